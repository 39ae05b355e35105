# ciel/core/surface.py
"""
Drawing-surface interface the engines render into.

Coordinates are in surface pixels with the origin at the top-left corner.
Colors are RGB triples in 0..255; alphas are in 0..1 and may be given per
item (arrays) or once for the whole batch (scalar).
"""

from typing import Callable, Protocol, Sequence, Tuple, Union, runtime_checkable

import numpy as np

Color = Tuple[int, int, int]
Scalars = Union[float, np.ndarray]
GradientStop = Tuple[float, Color, float]  # (offset 0..1, rgb, alpha)

POINTER_MOVE = "pointermove"
POINTER_ENTER = "pointerenter"
POINTER_LEAVE = "pointerleave"


@runtime_checkable
class Surface(Protocol):
    """Anything an engine can size itself against and draw on."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def fill(self, color: Color, alpha: float = 1.0) -> None:
        """Blend a solid color over the whole surface (``alpha < 1`` leaves trails)."""

    def draw_points(self, xy: np.ndarray, radius: Scalars, color: Color, alpha: Scalars) -> None:
        """Filled discs at ``xy[N, 2]``."""

    def draw_lines(self, starts: np.ndarray, ends: np.ndarray, color: Color, alpha: Scalars,
                   width: float = 1.0) -> None:
        """Straight segments ``starts[N, 2] -> ends[N, 2]``."""

    def draw_radial_gradient(self, center: Tuple[float, float], inner: float, outer: float,
                             stops: Sequence[GradientStop]) -> None:
        """Radial gradient between radii ``inner`` and ``outer``; transparent outside."""

    def add_listener(self, event: str, callback: Callable) -> None: ...

    def remove_listener(self, event: str, callback: Callable) -> None: ...


__all__ = [
    "Surface",
    "Color",
    "GradientStop",
    "POINTER_MOVE",
    "POINTER_ENTER",
    "POINTER_LEAVE",
]
