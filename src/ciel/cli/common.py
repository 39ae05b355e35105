"""
Common CLI options and utilities shared across all Ciel commands.
"""
from pathlib import Path
from typing import List, Optional

import typer

from ciel.core import utils


def parse_seed(seed_str: Optional[str]) -> Optional[int]:
    """``--seed`` as an int; bad values become a usage error with exit code 1."""
    try:
        return utils.parse_seed(seed_str)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from None


def resolve_config_path(config: Optional[Path], command_name: str, search_dirs: List[Path] = None) -> Optional[Path]:
    """
    Resolve configuration file path with smart defaults.

    Args:
        config: Explicit config path from user
        command_name: Name of the calling command
        search_dirs: Directories to search (default: ./configs, project configs)

    Returns:
        Path to the configuration file, or None when no default exists
        (the command then runs on model defaults).

    Raises:
        typer.BadParameter: If an explicit config file is not found
    """
    if config is not None:
        if not config.exists():
            raise typer.BadParameter(f"Configuration file not found: {config}")
        return config.resolve()

    if search_dirs is None:
        search_dirs = [
            Path.cwd() / "configs",
            Path(__file__).parent.parent.parent.parent / "configs",  # Project root configs
        ]

    default_names = [
        f"default_{command_name}.yml",
        f"default_{command_name}.yaml",
    ]
    for search_dir in search_dirs:
        if not search_dir.exists():
            continue
        for name in default_names:
            candidate = search_dir / name
            if candidate.exists():
                return candidate.resolve()
    return None


def resolve_output_path(output: Optional[Path], command_name: str) -> Path:
    """
    Resolve output directory with smart defaults.

    Args:
        output: Explicit output path from user
        command_name: Name of the calling command

    Returns:
        Path to output directory (created if necessary)
    """
    if output:
        output.mkdir(parents=True, exist_ok=True)
        return output.resolve()
    return utils.make_output_dir(command_name, base_output_dir=Path.cwd() / "outputs")
