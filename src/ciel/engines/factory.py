# src/ciel/engines/factory.py
"""Closed dispatch from ``SimulationKind`` to the engine that renders it."""

from typing import Mapping, Optional, Type, Union

from ciel.core.contract import SimulationEngine
from ciel.core.enums import SimulationKind
from ciel.engines.chaos import ChaosEngine
from ciel.engines.gravity import GravityEngine
from ciel.engines.hypercube import HypercubeEngine
from ciel.engines.lensing import LensingEngine


def _as_kind(kind: Union[str, SimulationKind]) -> SimulationKind:
    try:
        return SimulationKind(kind)
    except ValueError:
        known = sorted(k.value for k in SimulationKind)
        raise KeyError(f"Unknown simulation '{kind}'. Known: {known}") from None


def engine_type(kind: Union[str, SimulationKind]) -> Type[SimulationEngine]:
    kind = _as_kind(kind)
    if kind.is_attractor:
        return ChaosEngine
    elif kind is SimulationKind.GRAVITY:
        return GravityEngine
    elif kind is SimulationKind.WORMHOLE:
        return LensingEngine
    elif kind is SimulationKind.DIMENSIONS:
        return HypercubeEngine
    raise AssertionError(f"Unhandled simulation kind: {kind}")


def create_engine(
    kind: Union[str, SimulationKind],
    surface,
    params: Optional[Mapping[str, float]] = None,
    **kwargs,
) -> SimulationEngine:
    """Build the engine for ``kind`` bound to ``surface``.

    Extra keyword arguments (``scheduler``, ``seed``, engine-specific sizes)
    are forwarded to the engine constructor.
    """
    kind = _as_kind(kind)
    cls = engine_type(kind)
    if cls is ChaosEngine:
        kwargs["attractor"] = kind.value
    return cls(surface, params, **kwargs)
