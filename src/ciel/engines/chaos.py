# src/ciel/engines/chaos.py
"""
ChaosEngine: a cloud of particles riding a strange attractor.

Every particle is advanced with one RK4 step per frame. Particles that blow
up (non-finite or beyond ``DIVERGENCE_LIMIT``) are respawned next to the
attractor center, so the cloud stays populated whatever the parameters do.
The camera orbits slowly about the y axis and a perspective divide maps the
cloud to screen space; nearer particles are drawn brighter.

A ``TracerPair`` visualizes sensitivity to initial conditions: two points
launched from the same particle, 1e-6 apart in x, integrated independently.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple, Union

import numpy as np

from ciel.core.contract import ActionResult, SimulationEngine
from ciel.core.definitions import ATTRACTORS_DICT, AttractorDefinition, get_default_params, merge_params
from ciel.core.integrators import is_diverged, rk4_step
from ciel.core.logging import logger

PARTICLE_COUNT = 2500
WARMUP_STEPS = 500
TRAIL_FADE = 0.035
ROTATION_SPEED = 0.002
DIVERGENCE_LIMIT = 1000.0
FOV = 500.0
SPAWN_SPREAD = 4.0
PERTURB_AMOUNT = 0.01

TRACER_OFFSET = 1e-6
TRACER_TRAIL = 240
TRACER_COLORS = ((100, 200, 255), (255, 120, 100))


def project_points(points: np.ndarray, center, angle: float, scale: float,
                   width: float, height: float) -> Tuple[np.ndarray, np.ndarray]:
    """Rotate about y by ``angle`` around ``center`` and perspective-project.

    Returns ``(screen[N, 2], depth[N])``; depth > 1 means nearer than the
    focal plane.
    """
    local = np.asarray(points, dtype=np.float64) - np.asarray(center, dtype=np.float64)
    cos, sin = np.cos(angle), np.sin(angle)
    rx = local[..., 0] * cos - local[..., 2] * sin
    ry = local[..., 1]
    rz = local[..., 0] * sin + local[..., 2] * cos

    depth = FOV / (FOV + rz * scale * 0.1)
    sx = rx * scale * depth + width / 2
    sy = -ry * scale * depth + height / 2
    return np.stack([sx, sy], axis=-1), depth


@dataclass
class TracerPair:
    """Two nearby trajectories with bounded FIFO trails."""
    states: np.ndarray
    trails: Tuple[deque, deque] = field(default_factory=lambda: (deque(maxlen=TRACER_TRAIL), deque(maxlen=TRACER_TRAIL)))
    active: bool = True

    @classmethod
    def launch(cls, origin, offset: float = TRACER_OFFSET, trail_length: int = TRACER_TRAIL) -> "TracerPair":
        origin = np.asarray(origin, dtype=np.float64)
        twin = origin.copy()
        twin[0] += offset
        pair = cls(
            states=np.stack([origin, twin]),
            trails=(deque(maxlen=trail_length), deque(maxlen=trail_length)),
        )
        pair._record()
        return pair

    def _record(self) -> None:
        for trail, state in zip(self.trails, self.states):
            trail.append(state.copy())

    def advance(self, attractor: AttractorDefinition, params: Mapping[str, float]) -> bool:
        """Step both tracers; deactivate (keeping the trails) if either diverges."""
        if not self.active:
            return False
        with np.errstate(over="ignore", invalid="ignore"):
            nxt = rk4_step(attractor.derivative, self.states, params, attractor.dt)
        if is_diverged(nxt, DIVERGENCE_LIMIT).any():
            self.active = False
            return False
        self.states = nxt
        self._record()
        return True

    @property
    def separation(self) -> float:
        return float(np.linalg.norm(self.states[0] - self.states[1]))


class ChaosEngine(SimulationEngine):
    """Particle cloud + tracer pair for one of the declared attractors."""

    def __init__(
        self,
        surface,
        params: Optional[Mapping[str, float]] = None,
        *,
        attractor: Union[str, AttractorDefinition] = "lorenz",
        particle_count: int = PARTICLE_COUNT,
        warmup_steps: int = WARMUP_STEPS,
        **kwargs,
    ):
        self.definition = self._resolve(attractor)
        self.particle_count = int(particle_count)
        self.warmup_steps = int(warmup_steps)
        self.rotation_angle = 0.0
        self.cloud = np.zeros((self.particle_count, 3), dtype=np.float64)
        self.tracers: Optional[TracerPair] = None
        super().__init__(surface, params, **kwargs)

    @staticmethod
    def _resolve(attractor) -> AttractorDefinition:
        if isinstance(attractor, AttractorDefinition):
            return attractor
        try:
            return ATTRACTORS_DICT[str(attractor)]
        except KeyError:
            raise KeyError(f"Unknown attractor '{attractor}'. Known: {sorted(ATTRACTORS_DICT)}") from None

    @property
    def attractor(self) -> AttractorDefinition:
        return self.definition

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def _spawn(self, count: int) -> np.ndarray:
        jitter = (self.rng.random((count, 3)) - 0.5) * SPAWN_SPREAD
        return np.asarray(self.attractor.center, dtype=np.float64) + jitter

    def _advance_cloud(self) -> None:
        with np.errstate(over="ignore", invalid="ignore"):
            self.cloud = rk4_step(self.attractor.derivative, self.cloud, self.params, self.attractor.dt)
        bad = is_diverged(self.cloud, DIVERGENCE_LIMIT)
        n_bad = int(np.count_nonzero(bad))
        if n_bad:
            self.cloud[bad] = self._spawn(n_bad)

    def setup(self) -> None:
        self.rotation_angle = 0.0
        self.tracers = None
        self.cloud = self._spawn(self.particle_count)
        for _ in range(self.warmup_steps):
            self._advance_cloud()
        self.surface.fill((0, 0, 0))

    def reset(self) -> None:
        self.setup()

    def on_resize(self) -> None:
        self.surface.fill((0, 0, 0))

    def set_attractor(self, attractor: Union[str, AttractorDefinition],
                      params: Optional[Mapping[str, float]] = None) -> Dict[str, float]:
        """Switch flows: defaults (plus ``params``), angle reset, reseed + rewarm, no tracers."""
        self.definition = self._resolve(attractor)
        self.params = merge_params(self.definition, get_default_params(self.definition), params or {})
        if self.ready:
            self.setup()
        logger.debug(f"chaos: attractor set to '{self.definition.id}'")
        return dict(self.params)

    # ------------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------------
    def step(self) -> None:
        self.rotation_angle += ROTATION_SPEED
        self._advance_cloud()
        if self.tracers is not None and self.tracers.active:
            if not self.tracers.advance(self.attractor, self.params):
                logger.debug(f"{self.attractor.id}: tracer pair diverged; trails kept")

    def draw(self) -> None:
        surface = self.surface
        surface.fill((0, 0, 0), TRAIL_FADE)

        screen, depth = self.project(self.cloud)
        w, h = self.width, self.height
        visible = (
            (screen[:, 0] >= -10) & (screen[:, 0] <= w + 10)
            & (screen[:, 1] >= -10) & (screen[:, 1] <= h + 10)
        )
        alpha = np.minimum(depth * 0.8, 0.9)
        surface.draw_points(screen[visible], 0.8, (255, 255, 255), alpha[visible])

        if self.tracers is not None:
            self._draw_tracers()

    def _draw_tracers(self) -> None:
        for trail, color in zip(self.tracers.trails, TRACER_COLORS):
            if not trail:
                continue
            screen, _ = self.project(np.asarray(trail))
            if len(screen) > 1:
                # Opacity rises toward the newest point.
                alpha = np.linspace(0.05, 0.9, len(screen) - 1)
                self.surface.draw_lines(screen[:-1], screen[1:], color, alpha, width=1.2)
            self.surface.draw_points(screen[-1:], 2.5, color, 1.0)

    def project(self, points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        return project_points(points, self.attractor.center, self.rotation_angle,
                              self.attractor.scale, self.width, self.height)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def action_handlers(self):
        return {
            "perturb": self.perturb,
            "launchTracers": self.launch_tracers,
        }

    def perturb(self, amount: float = PERTURB_AMOUNT) -> Dict[str, float]:
        """Nudge one random parameter by up to ``±amount``; returns the new set."""
        keys = list(self.params)
        key = keys[int(self.rng.integers(len(keys)))]
        self.params[key] += (self.rng.random() - 0.5) * 2 * amount
        return dict(self.params)

    def launch_tracers(self) -> ActionResult:
        origin = self.cloud[int(self.rng.integers(self.particle_count))]
        self.tracers = TracerPair.launch(origin)
        return None

    @property
    def tracer_separation(self) -> Optional[float]:
        return None if self.tracers is None else self.tracers.separation
