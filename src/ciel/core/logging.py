"""
Unified logging utilities for the Ciel package.

Importing ciel never touches the sinks of the host application. Records
emitted from ``ciel.*`` modules are disabled until a caller opts in, either
through ``configure_console`` / ``setup_logfile`` or ``logger.enable("ciel")``.

Exports:
    - logger: Global Loguru logger (ready for use/import).
    - configure_console: Route console output through a Rich handler.
    - setup_logfile: Add file logging with rotation/compression.
"""

from typing import Optional

from loguru import logger
from rich.logging import RichHandler

__all__ = [
    "logger",
    "configure_console",
    "setup_logfile",
]

_DEFAULT_SINK_ID = 0
_console_sink_id: Optional[int] = None


def configure_console(level: str = "INFO", rich_tracebacks: bool = False) -> None:
    """
    Replace the console sink with a Rich handler at the given level.

    Only the sink installed by a previous call (or, on the first call,
    loguru's default stderr sink) is removed. Other sinks stay attached.

    Args:
        level (str): Logging level (DEBUG, INFO, etc.).
        rich_tracebacks (bool): Render exceptions with Rich tracebacks.
    """
    global _console_sink_id
    previous = _DEFAULT_SINK_ID if _console_sink_id is None else _console_sink_id
    try:
        logger.remove(previous)
    except ValueError:
        pass  # already removed elsewhere
    handler = RichHandler(
        rich_tracebacks=rich_tracebacks,
        markup=False,
        show_time=True,
        show_path=False,
        log_time_format="%Y-%m-%d %H:%M:%S",
    )
    _console_sink_id = logger.add(handler, level=level.upper(), format="{message}")
    logger.enable("ciel")


def setup_logfile(
    log_path: str,
    rotation: str = "10 MB",
    retention: str = "10 days",
    compression: str = "zip",
    level: str = "INFO",
) -> int:
    """
    Mirror ciel's records into a log file next to a run's outputs.

    ``ciel run`` and ``ciel bifurcation`` open one file per output directory
    (``run.log`` / ``bifurcation.log``) and drop the sink when the command
    finishes, so repeated runs in one process never write to a stale file.

    Args:
        log_path (str): Destination file.
        rotation (str): Size or time after which the file is rotated.
        retention (str): How long rotated files are kept.
        compression (str): Archive format for rotated files.
        level (str): Minimum level written (DEBUG, INFO, etc.).

    Returns:
        int: Sink id, to pass to ``logger.remove`` when the run is over.
    """
    sink_id = logger.add(
        log_path,
        rotation=rotation,
        retention=retention,
        compression=compression,
        level=level.upper(),
        colorize=False,
        backtrace=True,
        diagnose=True,
    )
    logger.enable("ciel")
    logger.info(f"Logging to {log_path}")
    return sink_id
