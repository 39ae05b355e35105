"""
Run configuration for the Ciel command line.

Configs are YAML files validated into Pydantic models. CLI overrides use dot
notation (``key.sub=value``); values are parsed with ``yaml.safe_load`` so
``frames=120`` yields an int and ``params.G=4.5`` a float.

Exports:
    - RunConfig: Headless engine run (simulation id, surface size, frames...).
    - BifurcationConfig: Offline bifurcation sweep.
    - load_config: Load + override + validate a config file.
    - apply_overrides: Merge dot-notation overrides into a raw dict.
"""

from pathlib import Path
from typing import Dict, List, Optional, Type, TypeVar, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "RunConfig",
    "BifurcationConfig",
    "load_config",
    "apply_overrides",
]

ModelT = TypeVar("ModelT", bound=BaseModel)


class RunConfig(BaseModel):
    """Headless run of one engine against a raster surface."""
    model_config = ConfigDict(extra="forbid")

    simulation: str = Field("lorenz", description="Definition id (see `ciel definitions list`)")
    width: int = Field(800, gt=0)
    height: int = Field(600, gt=0)
    frames: int = Field(240, ge=0, description="Frames to drive before the snapshot")
    fps: float = Field(60.0, gt=0)
    seed: Optional[int] = None
    params: Dict[str, float] = Field(default_factory=dict, description="Overrides on top of defaults")
    actions: List[str] = Field(default_factory=list, description="Action ids fired before the first frame")
    output_dir: Optional[Path] = None

    @field_validator("simulation")
    @classmethod
    def known_simulation(cls, v):
        from ciel.core.definitions import DEFINITIONS_DICT

        if v not in DEFINITIONS_DICT:
            raise ValueError(f"Unknown simulation '{v}'. Known: {sorted(DEFINITIONS_DICT)}")
        return v


class BifurcationConfig(BaseModel):
    """Offline parameter sweep over one attractor."""
    model_config = ConfigDict(extra="forbid")

    attractor: str = "lorenz"
    steps: int = Field(800, gt=0)
    warmup: int = Field(2000, ge=0)
    collect: int = Field(2000, ge=3)
    seed: Optional[int] = None
    output_dir: Optional[Path] = None

    @field_validator("attractor")
    @classmethod
    def known_attractor(cls, v):
        from ciel.core.definitions import ATTRACTORS_DICT

        if v not in ATTRACTORS_DICT:
            raise ValueError(f"Unknown attractor '{v}'. Known: {sorted(ATTRACTORS_DICT)}")
        return v


def apply_overrides(config: dict, overrides: Optional[List[str]]) -> dict:
    """Merge ``key1.key2=value`` overrides into ``config`` (in place) and return it."""
    for override in overrides or []:
        if "=" not in override:
            raise ValueError(f"Override must look like key=value, got: {override}")
        key, val = override.split("=", 1)
        keys = key.strip().split(".")
        d = config
        for k in keys[:-1]:
            d = d.setdefault(k, {})
        d[keys[-1]] = yaml.safe_load(val)
    return config


def load_config(
    config_file: Optional[Union[str, Path]],
    model: Type[ModelT],
    overrides: Optional[List[str]] = None,
) -> ModelT:
    """
    Load a YAML config, merge CLI overrides and validate it into ``model``.

    A ``None`` path starts from the model defaults.

    Raises:
        FileNotFoundError: If ``config_file`` is given but does not exist.
        pydantic.ValidationError: If the merged config is invalid.
    """
    raw: dict = {}
    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")
        with open(config_file, "r") as f:
            raw = yaml.safe_load(f) or {}
    apply_overrides(raw, overrides)
    return model.model_validate(raw)
