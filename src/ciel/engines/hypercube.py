# src/ciel/engines/hypercube.py
"""
HypercubeEngine: a rotating tesseract seen through two perspective divides.

Each frame the 16 vertices of the 4-cube are rotated in the XW plane (angle
A), the YZ plane (angle B) and, more slowly, the XZ plane (0.3·A), then
projected 4D -> 3D along w and 3D -> 2D along z. The product of the two
perspective factors is used as a depth cue for edge and vertex opacity.
"""

from typing import Tuple

import numpy as np

from ciel.core.contract import SimulationEngine
from ciel.core.definitions import get_definition

TRAIL_FADE = 0.055
VERTEX_RADIUS = 3.0
VERTEX_GLOW = 14.0
EDGE_WIDTH = 1.2
EYE_DISTANCE_3D = 5.0
SCALE_FRACTION = 0.18

EDGE_COLOR = (200, 215, 255)
GLOW_COLOR = (180, 200, 255)
VERTEX_COLOR = (220, 230, 255)

# Vertex i has coordinate k = +1 when bit k of i is set, else -1.
VERTICES = np.array(
    [[1.0 if i & (1 << k) else -1.0 for k in range(4)] for i in range(16)]
)
VERTICES.setflags(write=False)

# Vertices joined by an edge differ in exactly one coordinate (one bit).
EDGES = np.array(
    [(i, j) for i in range(16) for j in range(i + 1, 16) if bin(i ^ j).count("1") == 1],
    dtype=np.int64,
)
EDGES.setflags(write=False)


def project_hypercube(angle_a: float, angle_b: float, perspective: float,
                      width: float, height: float) -> Tuple[np.ndarray, np.ndarray]:
    """Rotate and project ``VERTICES``; returns ``(screen[16, 2], depth[16])``."""
    d4 = perspective + 2.0
    scale = min(width, height) * SCALE_FRACTION
    x, y, z, w = VERTICES.T

    cos_a, sin_a = np.cos(angle_a), np.sin(angle_a)
    x, w = x * cos_a - w * sin_a, x * sin_a + w * cos_a

    cos_b, sin_b = np.cos(angle_b), np.sin(angle_b)
    y, z = y * cos_b - z * sin_b, y * sin_b + z * cos_b

    angle_c = angle_a * 0.3
    cos_c, sin_c = np.cos(angle_c), np.sin(angle_c)
    x, z = x * cos_c - z * sin_c, x * sin_c + z * cos_c

    pw = d4 / (d4 - w)
    x3, y3, z3 = x * pw, y * pw, z * pw
    pz = EYE_DISTANCE_3D / (EYE_DISTANCE_3D - z3)

    screen = np.column_stack([x3 * pz * scale + width / 2, y3 * pz * scale + height / 2])
    return screen, pw * pz


class HypercubeEngine(SimulationEngine):
    """Tesseract rotating in two independent planes."""

    def __init__(self, surface, params=None, **kwargs):
        self.definition = get_definition("dimensions")
        self.angle_a = 0.0
        self.angle_b = 0.0
        super().__init__(surface, params, **kwargs)

    def setup(self) -> None:
        self.surface.fill((0, 0, 0))

    def reset(self) -> None:
        self.angle_a = 0.0
        self.angle_b = 0.0
        self.surface.fill((0, 0, 0))

    def on_resize(self) -> None:
        self.surface.fill((0, 0, 0))

    def step(self) -> None:
        self.angle_a += self.params["speedA"]
        self.angle_b += self.params["speedB"]

    def project(self) -> Tuple[np.ndarray, np.ndarray]:
        return project_hypercube(self.angle_a, self.angle_b, self.params["perspective"],
                                 self.width, self.height)

    def draw(self) -> None:
        surface = self.surface
        surface.fill((0, 0, 0), TRAIL_FADE)
        screen, depth = self.project()

        i, j = EDGES[:, 0], EDGES[:, 1]
        edge_alpha = np.clip((depth[i] + depth[j]) / 2 * 0.35, 0.05, 0.75)
        surface.draw_lines(screen[i], screen[j], EDGE_COLOR, edge_alpha, width=EDGE_WIDTH)

        alpha = np.clip(depth * 0.45, 0.1, 1.0)
        radius = np.maximum(VERTEX_RADIUS * depth * 0.5, 1.5)
        glow = VERTEX_GLOW * np.maximum(depth * 0.4, 0.3)
        # Glow then disc, vertex by vertex.
        for k in range(len(VERTICES)):
            center = (float(screen[k, 0]), float(screen[k, 1]))
            surface.draw_radial_gradient(center, 0.0, float(glow[k]), [
                (0.0, GLOW_COLOR, float(alpha[k]) * 0.25),
                (1.0, GLOW_COLOR, 0.0),
            ])
            surface.draw_points(screen[k:k + 1], radius[k], VERTEX_COLOR, alpha[k])
