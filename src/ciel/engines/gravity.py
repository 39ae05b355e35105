# src/ciel/engines/gravity.py
"""
GravityEngine: softened Newtonian N-body system with a dust field.

Bodies are integrated with velocity-Verlet; dust particles feel the bodies
but not each other and are advanced with semi-implicit Euler. The camera
tracks the mass-weighted centroid and zooms out so every body stays in view
(never zooming in beyond native scale). Dust that drifts out of the view is
respawned around the camera center.

World coordinates are surface pixels at ``scale == 1``.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from ciel.core.contract import ActionResult, SimulationEngine
from ciel.core.definitions import get_definition
from ciel.core.integrators import (
    field_accelerations,
    pairwise_accelerations,
    semi_implicit_euler_step,
    total_energy,
    velocity_verlet_step,
)
from ciel.core.logging import logger

DUST_COUNT = 600
TRAIL_FADE = 0.04
DT = 0.4
MAX_BODIES = 12
BODY_RADIUS = 4.0
BODY_GLOW_RADIUS = 18.0
INITIAL_MASS = 200.0
INITIAL_BODIES = 3
ORBIT_FRACTION = 0.18
TAU = 2.0 * np.pi

CAM_FOLLOW_SPEED = 0.05
CAM_ZOOM_SPEED = 0.03
CAM_PADDING = 2.8
CAM_MIN_EXTENT = 80.0

DUST_SPREAD = 0.4
DUST_SPEED = 0.3
PERTURB_SPEED = 3.0

BODY_COLORS: List[Tuple[int, int, int]] = [
    (100, 200, 255),  # cyan
    (255, 120, 100),  # coral
    (255, 215, 70),   # gold
    (180, 100, 255),  # purple
    (100, 255, 150),  # green
    (255, 150, 200),  # pink
    (255, 170, 60),   # orange
    (100, 255, 255),  # teal
    (200, 160, 255),  # lavender
    (255, 255, 100),  # yellow
    (150, 255, 200),  # mint
    (255, 150, 150),  # salmon
]


@dataclass(frozen=True)
class Body:
    """Read-only snapshot of one massive body."""
    x: float
    y: float
    vx: float
    vy: float
    ax: float
    ay: float
    mass: float
    color: Tuple[int, int, int]


@dataclass
class Camera:
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0

    def to_screen(self, points: np.ndarray, width: float, height: float) -> np.ndarray:
        return (points - (self.x, self.y)) * self.scale + (width / 2, height / 2)


class GravityEngine(SimulationEngine):
    """Velocity-Verlet N-body system, dust field and auto-fitting camera."""

    def __init__(self, surface, params=None, *, dust_count: int = DUST_COUNT, **kwargs):
        self.definition = get_definition("gravity")
        self.dust_count = int(dust_count)
        self.camera = Camera()
        self._empty_state()
        super().__init__(surface, params, **kwargs)

    def _empty_state(self) -> None:
        self.pos = np.zeros((0, 2))
        self.vel = np.zeros((0, 2))
        self.acc = np.zeros((0, 2))
        self.mass = np.zeros(0)
        self.colors: List[Tuple[int, int, int]] = []
        self.dust_pos = np.zeros((self.dust_count, 2))
        self.dust_vel = np.zeros((self.dust_count, 2))
        self._dust_acc = np.zeros((self.dust_count, 2))

    @property
    def eps2(self) -> float:
        return self.params["softening"] ** 2

    # ------------------------------------------------------------------
    # Initial conditions
    # ------------------------------------------------------------------
    def _init_bodies(self) -> None:
        cx, cy = self.width / 2, self.height / 2
        orbit_r = min(self.width, self.height) * ORBIT_FRACTION
        speed = np.sqrt(self.params["G"] * INITIAL_MASS / (orbit_r * 0.8))

        angles = np.arange(INITIAL_BODIES) * TAU / INITIAL_BODIES - np.pi / 2
        self.pos = np.column_stack([cx + np.cos(angles) * orbit_r, cy + np.sin(angles) * orbit_r])
        self.vel = np.column_stack([-np.sin(angles) * speed, np.cos(angles) * speed])
        self.mass = np.full(INITIAL_BODIES, INITIAL_MASS)
        self.colors = [BODY_COLORS[i % len(BODY_COLORS)] for i in range(INITIAL_BODIES)]
        self.acc = np.zeros_like(self.pos)
        self._recompute_accelerations()

        self.camera = Camera(cx, cy, 1.0)

    def _random_disc(self, count: int, cx: float, cy: float, radius: float) -> np.ndarray:
        angle = self.rng.random(count) * TAU
        dist = self.rng.random(count) * radius
        return np.column_stack([cx + np.cos(angle) * dist, cy + np.sin(angle) * dist])

    def _random_dust_velocity(self, count: int) -> np.ndarray:
        return (self.rng.random((count, 2)) - 0.5) * DUST_SPEED

    def _init_dust(self) -> None:
        spread = min(self.width, self.height) * DUST_SPREAD
        self.dust_pos = self._random_disc(self.dust_count, self.camera.x, self.camera.y, spread)
        self.dust_vel = self._random_dust_velocity(self.dust_count)
        self._dust_acc = np.zeros_like(self.dust_pos)

    def _recompute_accelerations(self) -> None:
        pairwise_accelerations(self.pos, self.mass, self.params["G"], self.eps2, self.acc)

    def setup(self) -> None:
        self._init_bodies()
        self._init_dust()
        self.surface.fill((0, 0, 0))

    def reset(self) -> None:
        self.setup()

    def on_resize(self) -> None:
        self.surface.fill((0, 0, 0))

    def on_params_changed(self) -> None:
        # acc must match the current G and softening.
        self._recompute_accelerations()

    # ------------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------------
    def _step_bodies(self) -> None:
        velocity_verlet_step(self.pos, self.vel, self.acc, self.mass, self.params["G"], self.eps2, DT)

    def _step_dust(self) -> None:
        field_accelerations(self.dust_pos, self.pos, self.mass, self.params["G"], self.eps2, self._dust_acc)
        semi_implicit_euler_step(self.dust_pos, self.dust_vel, self._dust_acc, DT)

        cam = self.camera
        view_extent = max(self.width, self.height) / cam.scale
        offset = self.dust_pos - (cam.x, cam.y)
        far = np.einsum("ij,ij->i", offset, offset) > 4.0 * view_extent * view_extent
        n_far = int(np.count_nonzero(far))
        if n_far:
            self.dust_pos[far] = self._random_disc(n_far, cam.x, cam.y, view_extent * DUST_SPREAD)
            self.dust_vel[far] = self._random_dust_velocity(n_far)

    def _update_camera(self) -> None:
        if len(self.mass) == 0:
            return
        com = self.center_of_mass()
        cam = self.camera
        cam.x += (com[0] - cam.x) * CAM_FOLLOW_SPEED
        cam.y += (com[1] - cam.y) * CAM_FOLLOW_SPEED

        max_dist = max(float(np.max(np.hypot(*(self.pos - com).T))), CAM_MIN_EXTENT)
        target = min(min(self.width, self.height) / (max_dist * CAM_PADDING), 1.0)
        cam.scale += (target - cam.scale) * CAM_ZOOM_SPEED

    def step(self) -> None:
        self._step_bodies()
        self._step_dust()
        self._update_camera()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def draw(self) -> None:
        surface = self.surface
        w, h = self.width, self.height
        surface.fill((0, 0, 0), TRAIL_FADE)

        dust = self.camera.to_screen(self.dust_pos, w, h)
        on_screen = (
            (dust[:, 0] >= -20) & (dust[:, 0] <= w + 20)
            & (dust[:, 1] >= -20) & (dust[:, 1] <= h + 20)
        )
        surface.draw_points(dust[on_screen], 0.5, (255, 255, 255), 0.5)

        sc = self.camera.scale
        glow = BODY_GLOW_RADIUS * sc
        radius = max(BODY_RADIUS * sc, 2.0)
        screen = self.camera.to_screen(self.pos, w, h)
        for (sx, sy), color in zip(screen, self.colors):
            if sx < -100 or sx > w + 100 or sy < -100 or sy > h + 100:
                continue
            surface.draw_radial_gradient((sx, sy), 0.0, glow, [(0.0, color, 0.35), (1.0, color, 0.0)])
            surface.draw_points(np.array([[sx, sy]]), radius, color, 1.0)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def action_handlers(self):
        return {
            "addBody": self.add_body,
            "perturb": self.perturb,
        }

    def add_body(self) -> ActionResult:
        """Drop a new body near the camera center on a roughly circular orbit."""
        n = len(self.mass)
        if n >= MAX_BODIES:
            logger.debug(f"gravity: addBody rejected, already {n} bodies")
            return None

        angle = self.rng.random() * TAU
        dist = min(self.width, self.height) * (0.1 + self.rng.random() * 0.15)
        speed = np.sqrt(self.params["G"] * INITIAL_MASS / (dist * 0.8))
        mass = INITIAL_MASS * (0.5 + self.rng.random())

        cam = self.camera
        new_pos = [cam.x + np.cos(angle) * dist, cam.y + np.sin(angle) * dist]
        new_vel = [-np.sin(angle) * speed, np.cos(angle) * speed]
        self.pos = np.vstack([self.pos, new_pos])
        self.vel = np.vstack([self.vel, new_vel])
        self.mass = np.append(self.mass, mass)
        self.colors.append(BODY_COLORS[n % len(BODY_COLORS)])
        self.acc = np.zeros_like(self.pos)
        self._recompute_accelerations()
        return None

    def perturb(self) -> ActionResult:
        self.vel += (self.rng.random(self.vel.shape) - 0.5) * PERTURB_SPEED
        return None

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    @property
    def bodies(self) -> List[Body]:
        return [
            Body(float(p[0]), float(p[1]), float(v[0]), float(v[1]), float(a[0]), float(a[1]), float(m), c)
            for p, v, a, m, c in zip(self.pos, self.vel, self.acc, self.mass, self.colors)
        ]

    def center_of_mass(self) -> np.ndarray:
        return (self.pos * self.mass[:, None]).sum(axis=0) / self.mass.sum()

    def total_energy(self) -> float:
        return total_energy(self.pos, self.vel, self.mass, self.params["G"], self.eps2)
