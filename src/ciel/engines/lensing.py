# src/ciel/engines/lensing.py
"""
LensingEngine: a point-mass gravitational lens over a static star field.

For a source at angular distance β from the lens, the thin-lens equation
gives two images

    θ± = (β ± √(β² + 4θ_E²)) / 2,    μ± = |θ± / β|

The primary image (θ+) lies on the source's side, outside the Einstein
radius θ_E; the secondary (θ−, negative) lies on the opposite side, inside
it, and fades quickly as β grows. All positions are in surface pixels.

The lens follows the pointer while it is over the surface and drifts along a
slow Lissajous path otherwise.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ciel.core.contract import SimulationEngine
from ciel.core.definitions import get_definition
from ciel.core.surface import POINTER_ENTER, POINTER_LEAVE, POINTER_MOVE

STAR_COUNT = 2000
STAR_PADDING = 250.0
LERP_FACTOR = 0.08
IDLE_SPEED = 0.0004
SHADOW_FACTOR = 0.25
MIN_BETA = 0.5
SECONDARY_CUTOFF = 3.0
VIEW_MARGIN = 10.0

RING_COLOR = (200, 220, 255)
STAR_COLOR = (255, 255, 255)


def lens_images(beta, theta_e) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Image radii and magnifications of a point lens.

    Args:
        beta: Source distance(s) from the lens, > 0.
        theta_e: Einstein radius.

    Returns:
        ``(theta_plus, theta_minus, mu_plus, mu_minus)``; ``theta_minus`` is
        negative (the image is on the far side of the lens).
    """
    beta = np.asarray(beta, dtype=np.float64)
    disc = np.sqrt(beta * beta + 4.0 * theta_e * theta_e)
    theta_plus = (beta + disc) * 0.5
    theta_minus = (beta - disc) * 0.5
    return theta_plus, theta_minus, np.abs(theta_plus / beta), np.abs(theta_minus / beta)


@dataclass
class LensState:
    x: float = 0.0
    y: float = 0.0
    target_x: float = 0.0
    target_y: float = 0.0
    pointer_inside: bool = False
    idle_time: float = 0.0


class LensingEngine(SimulationEngine):
    """Thin-lens renderer with pointer tracking."""

    def __init__(self, surface, params=None, *, star_count: int = STAR_COUNT, **kwargs):
        self.definition = get_definition("wormhole")
        self.star_count = int(star_count)
        self.lens = LensState()
        self.star_pos = np.zeros((self.star_count, 2))
        self.star_size = np.zeros(self.star_count)
        self.star_bright = np.zeros(self.star_count)
        super().__init__(surface, params, **kwargs)

    # ------------------------------------------------------------------
    # Surface listeners
    # ------------------------------------------------------------------
    def attach(self) -> None:
        self.surface.add_listener(POINTER_MOVE, self.on_pointer_move)
        self.surface.add_listener(POINTER_ENTER, self.on_pointer_enter)
        self.surface.add_listener(POINTER_LEAVE, self.on_pointer_leave)

    def detach(self) -> None:
        self.surface.remove_listener(POINTER_MOVE, self.on_pointer_move)
        self.surface.remove_listener(POINTER_ENTER, self.on_pointer_enter)
        self.surface.remove_listener(POINTER_LEAVE, self.on_pointer_leave)

    def on_pointer_move(self, x: float, y: float) -> None:
        """Pointer position in surface-local pixels."""
        self.lens.target_x = float(x)
        self.lens.target_y = float(y)
        self.lens.pointer_inside = True

    def on_pointer_enter(self, *_args) -> None:
        self.lens.pointer_inside = True

    def on_pointer_leave(self, *_args) -> None:
        self.lens.pointer_inside = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def _generate_stars(self) -> None:
        w, h = self.width, self.height
        n = self.star_count
        self.star_pos = np.column_stack([
            -STAR_PADDING + self.rng.random(n) * (w + 2 * STAR_PADDING),
            -STAR_PADDING + self.rng.random(n) * (h + 2 * STAR_PADDING),
        ])
        # Mostly faint stars, a few bright ones.
        raw = self.rng.random(n)
        self.star_size = 0.4 + raw * raw * 2.2
        self.star_bright = 0.2 + raw * 0.8

    def setup(self) -> None:
        self._generate_stars()
        lens = self.lens
        lens.x = lens.target_x = self.width / 2
        lens.y = lens.target_y = self.height / 2

    def reset(self) -> None:
        self._generate_stars()

    def step(self) -> None:
        lens = self.lens
        if not lens.pointer_inside:
            lens.idle_time += 1
            lens.target_x = self.width / 2 + np.sin(lens.idle_time * IDLE_SPEED) * self.width * 0.2
            lens.target_y = self.height / 2 + np.sin(lens.idle_time * IDLE_SPEED * 1.3 + 1.0) * self.height * 0.15
        lens.x += (lens.target_x - lens.x) * LERP_FACTOR
        lens.y += (lens.target_y - lens.y) * LERP_FACTOR

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def _in_view(self, xy: np.ndarray) -> np.ndarray:
        w, h = self.width, self.height
        return (
            (xy[:, 0] > -VIEW_MARGIN) & (xy[:, 0] < w + VIEW_MARGIN)
            & (xy[:, 1] > -VIEW_MARGIN) & (xy[:, 1] < h + VIEW_MARGIN)
        )

    def draw(self) -> None:
        surface = self.surface
        surface.fill((0, 0, 0))

        lens_xy = np.array([self.lens.x, self.lens.y])
        theta_e = self.params["einsteinRadius"]
        intensity = self.params["intensity"]

        offset = self.star_pos - lens_xy
        beta = np.hypot(offset[:, 0], offset[:, 1])
        keep = beta >= MIN_BETA
        offset, beta = offset[keep], beta[keep]
        size, bright = self.star_size[keep], self.star_bright[keep]
        unit = offset / beta[:, None]

        theta_p, theta_m, mu_p, mu_m = lens_images(beta, theta_e)

        # Primary image: same side as the source.
        img = lens_xy + unit * theta_p[:, None]
        vis = self._in_view(img)
        size_p = np.minimum(size * (1 + (mu_p - 1) * intensity * 0.4), 5.0)
        bright_p = np.minimum(bright * mu_p * intensity * 0.7, 1.0)
        surface.draw_points(img[vis], size_p[vis], STAR_COLOR, bright_p[vis])

        # Secondary image: opposite side, only for sources near the lens.
        img = lens_xy + unit * theta_m[:, None]
        size_m = np.maximum(np.minimum(size * (1 + (mu_m - 1) * intensity * 0.3), 3.0), 0.3)
        bright_m = np.minimum(bright * mu_m * intensity * 0.4, 0.7)
        vis = (
            (beta < theta_e * SECONDARY_CUTOFF) & self._in_view(img)
            & (mu_m > 0.05) & (bright_m > 0.03)
        )
        surface.draw_points(img[vis], size_m[vis], STAR_COLOR, bright_m[vis])

        center = (float(lens_xy[0]), float(lens_xy[1]))
        surface.draw_radial_gradient(center, theta_e * 0.85, theta_e * 1.25, [
            (0.0, RING_COLOR, 0.0),
            (0.4, RING_COLOR, 0.06),
            (0.6, RING_COLOR, 0.06),
            (1.0, RING_COLOR, 0.0),
        ])
        surface.draw_radial_gradient(center, 0.0, theta_e * SHADOW_FACTOR, [
            (0.0, (0, 0, 0), 1.0),
            (0.7, (0, 0, 0), 0.9),
            (1.0, (0, 0, 0), 0.0),
        ])
