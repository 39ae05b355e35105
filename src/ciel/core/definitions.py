"""
Static simulation definitions: the single source of truth for equations,
parameter ranges, defaults and actions of every supported simulation.

Callers build their controls from these records; engines only trust the
parameter keys.

Exports:
    - ParamDef, ActionDef, BifurcationSpec: Pydantic models for one entry.
    - SimulationDefinition: Metadata of one simulation kind.
    - AttractorDefinition: SimulationDefinition plus vector field and framing.
    - ATTRACTORS, SIMULATIONS: The canonical registries.
    - ATTRACTORS_DICT, DEFINITIONS_DICT: Lookup by id.
    - get_definition, get_default_params: Utility functions.
"""

from typing import Callable, Dict, List, Literal, Mapping, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ciel.core.enums import SimulationKind

# --- Core Data Structures ---

class ParamDef(BaseModel):
    """One user-tunable parameter and the range its input widget clamps to."""
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Canonical key (used in parameter sets)")
    symbol: str = Field(..., description="Display symbol")
    min: float
    max: float
    step: float
    default: float

    @model_validator(mode="after")
    def default_within_range(self):
        if not (self.min <= self.default <= self.max):
            raise ValueError(f"Default for '{self.key}' lies outside [{self.min}, {self.max}]")
        return self


class ActionDef(BaseModel):
    """A discrete operation exposed as a button."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    accent: bool = False


class BifurcationSpec(BaseModel):
    """Which parameter to sweep, over what range, and which coordinate to sample."""
    model_config = ConfigDict(frozen=True)

    param_key: str
    range: Tuple[float, float]
    component: Literal[0, 1, 2]


class SimulationDefinition(BaseModel):
    """Complete, read-only metadata for one simulation kind."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    subtitle: str = ""
    equations: List[str] = Field(default_factory=list)
    params: List[ParamDef] = Field(default_factory=list)
    actions: List[ActionDef] = Field(default_factory=list)

    @property
    def kind(self) -> SimulationKind:
        return SimulationKind(self.id)

    @property
    def param_keys(self) -> List[str]:
        return [p.key for p in self.params]

    @property
    def action_ids(self) -> List[str]:
        return [a.id for a in self.actions]


class AttractorDefinition(SimulationDefinition):
    """A chaotic flow ``(x, y, z, params) -> (dx/dt, dy/dt, dz/dt)`` and its framing."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    derivative: Callable = Field(..., description="Pure vector field; accepts floats or arrays")
    scale: float = Field(..., description="World-to-screen scale")
    center: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    dt: float = Field(..., gt=0, description="Fixed RK4 step")
    bifurcation: BifurcationSpec

    @model_validator(mode="after")
    def bifurcation_param_declared(self):
        if self.bifurcation.param_key not in self.param_keys:
            raise ValueError(f"Bifurcation key '{self.bifurcation.param_key}' not declared on '{self.id}'")
        return self

# --- Vector fields ---

def lorenz(x, y, z, p):
    return (
        p["sigma"] * (y - x),
        x * (p["rho"] - z) - y,
        x * y - p["beta"] * z,
    )


def aizawa(x, y, z, p):
    return (
        (z - p["b"]) * x - p["d"] * y,
        p["d"] * x + (z - p["b"]) * y,
        p["c"] + p["a"] * z - (z * z * z) / 3.0
        - (x * x + y * y) * (1.0 + p["e"] * z)
        + p["f"] * z * x * x * x,
    )


def thomas(x, y, z, p):
    return (
        np.sin(y) - p["b"] * x,
        np.sin(z) - p["b"] * y,
        np.sin(x) - p["b"] * z,
    )

# === Registries ===

_CHAOS_ACTIONS = [
    ActionDef(id="launchTracers", label="Divergence", accent=True),
    ActionDef(id="perturb", label="Perturb"),
    ActionDef(id="reset", label="Reset"),
]

ATTRACTORS: List[AttractorDefinition] = [
    AttractorDefinition(
        id="lorenz",
        name="Lorenz",
        subtitle="Chaos Theory",
        equations=["dx/dt = σ(y − x)", "dy/dt = x(ρ − z) − y", "dz/dt = xy − βz"],
        params=[
            ParamDef(key="sigma", symbol="σ", min=0, max=50, step=0.1, default=10),
            ParamDef(key="rho", symbol="ρ", min=0, max=50, step=0.1, default=28),
            ParamDef(key="beta", symbol="β", min=0, max=10, step=0.01, default=8 / 3),
        ],
        actions=_CHAOS_ACTIONS,
        derivative=lorenz,
        scale=8,
        center=(0, 0, 25),
        dt=0.005,
        bifurcation=BifurcationSpec(param_key="rho", range=(0, 200), component=2),
    ),
    AttractorDefinition(
        id="aizawa",
        name="Aizawa",
        subtitle="Chaos Theory",
        equations=[
            "dx/dt = (z − b)x − dy",
            "dy/dt = dx + (z − b)y",
            "dz/dt = c + az − z³/3 − (x²+y²)(1+ez) + fzx³",
        ],
        params=[
            ParamDef(key="a", symbol="a", min=0, max=2, step=0.01, default=0.95),
            ParamDef(key="b", symbol="b", min=0, max=2, step=0.01, default=0.7),
            ParamDef(key="c", symbol="c", min=0, max=2, step=0.01, default=0.6),
            ParamDef(key="d", symbol="d", min=0, max=5, step=0.01, default=3.5),
            ParamDef(key="e", symbol="e", min=0, max=1, step=0.01, default=0.25),
            ParamDef(key="f", symbol="f", min=0, max=1, step=0.01, default=0.1),
        ],
        actions=_CHAOS_ACTIONS,
        derivative=aizawa,
        scale=150,
        center=(0, 0, 0),
        dt=0.005,
        bifurcation=BifurcationSpec(param_key="a", range=(0.4, 1.5), component=2),
    ),
    AttractorDefinition(
        id="thomas",
        name="Thomas",
        subtitle="Chaos Theory",
        equations=["dx/dt = sin(y) − bx", "dy/dt = sin(z) − by", "dz/dt = sin(x) − bz"],
        params=[
            ParamDef(key="b", symbol="b", min=0.05, max=0.5, step=0.001, default=0.208186),
        ],
        actions=_CHAOS_ACTIONS,
        derivative=thomas,
        scale=80,
        center=(0, 0, 0),
        dt=0.05,
        bifurcation=BifurcationSpec(param_key="b", range=(0.05, 0.35), component=0),
    ),
]

SIMULATIONS: List[SimulationDefinition] = [
    SimulationDefinition(
        id="gravity",
        name="Gravity",
        subtitle="N-Body Problem",
        equations=["F = Gm₁m₂ / (r² + ε²)", "a = F / m"],
        params=[
            ParamDef(key="G", symbol="G", min=0.5, max=20, step=0.1, default=6),
            ParamDef(key="softening", symbol="ε", min=2, max=50, step=1, default=12),
        ],
        actions=[
            ActionDef(id="addBody", label="Add Body", accent=True),
            ActionDef(id="perturb", label="Perturb"),
            ActionDef(id="reset", label="Reset"),
        ],
    ),
    SimulationDefinition(
        id="wormhole",
        name="Wormhole",
        subtitle="Gravitational Lensing",
        equations=["θ± = (β ± √(β² + 4θ²_E)) / 2", "μ = |θ/β · dθ/dβ|"],
        params=[
            ParamDef(key="einsteinRadius", symbol="R_E", min=20, max=200, step=1, default=80),
            ParamDef(key="intensity", symbol="I", min=0.5, max=3, step=0.05, default=1.5),
        ],
        actions=[ActionDef(id="reset", label="Reset")],
    ),
    SimulationDefinition(
        id="dimensions",
        name="Dimensions",
        subtitle="4D Geometry",
        equations=["P₄→₃ = d / (d − w)", "P₃→₂ = d / (d − z)"],
        params=[
            ParamDef(key="speedA", symbol="ωA", min=0, max=0.04, step=0.001, default=0.008),
            ParamDef(key="speedB", symbol="ωB", min=0, max=0.04, step=0.001, default=0.005),
            ParamDef(key="perspective", symbol="d", min=1.5, max=8, step=0.1, default=3),
        ],
        actions=[ActionDef(id="reset", label="Reset")],
    ),
]

# --- Generate Derived Exports ---

ATTRACTORS_DICT: Dict[str, AttractorDefinition] = {a.id: a for a in ATTRACTORS}

DEFINITIONS_DICT: Dict[str, SimulationDefinition] = {
    d.id: d for d in [*ATTRACTORS, *SIMULATIONS]
}

# --- Utility Functions ---

def get_definition(sim_id) -> SimulationDefinition:
    """Look up a definition by id (or SimulationKind)."""
    key = sim_id.value if isinstance(sim_id, SimulationKind) else str(sim_id)
    try:
        return DEFINITIONS_DICT[key]
    except KeyError:
        raise KeyError(f"Unknown simulation '{key}'. Known: {sorted(DEFINITIONS_DICT)}") from None


def get_default_params(definition: SimulationDefinition) -> Dict[str, float]:
    """Fresh parameter set populated from the definition's defaults."""
    return {p.key: float(p.default) for p in definition.params}


def merge_params(definition: SimulationDefinition, current: Mapping[str, float],
                 incoming: Mapping[str, float]) -> Dict[str, float]:
    """Overlay ``incoming`` on ``current``, keeping only declared keys."""
    merged = {p.key: float(current.get(p.key, p.default)) for p in definition.params}
    for key, value in incoming.items():
        if key in merged:
            merged[key] = float(value)
    return merged


__all__ = [
    "ParamDef", "ActionDef", "BifurcationSpec",
    "SimulationDefinition", "AttractorDefinition",
    "lorenz", "aizawa", "thomas",
    "ATTRACTORS", "SIMULATIONS", "ATTRACTORS_DICT", "DEFINITIONS_DICT",
    "get_definition", "get_default_params", "merge_params",
]
