# ciel/core/enums.py

from enum import Enum

class SimulationKind(str, Enum):
    """Closed set of simulation kinds an engine can be built for."""
    LORENZ = "lorenz"
    AIZAWA = "aizawa"
    THOMAS = "thomas"
    GRAVITY = "gravity"
    WORMHOLE = "wormhole"
    DIMENSIONS = "dimensions"

    @property
    def is_attractor(self) -> bool:
        return self in (SimulationKind.LORENZ, SimulationKind.AIZAWA, SimulationKind.THOMAS)

class EngineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DESTROYED = "destroyed"

__all__ = [
    "SimulationKind",
    "EngineState",
]
