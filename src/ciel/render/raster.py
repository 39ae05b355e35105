# src/ciel/render/raster.py
"""
RasterSurface: an in-memory RGB canvas implementing ``ciel.core.surface.Surface``.

Drawing is plain alpha compositing on a float32 ``(height, width, 3)`` array.
Discs are stamped pixel-by-pixel, lines are sampled at ~1px spacing and
radial gradients are evaluated over their bounding box. It is meant for
headless runs, snapshots and tests rather than throughput.
"""

from collections import defaultdict
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np

from ciel.core.surface import Color, GradientStop

_MAX_STAMP_RADIUS = 32
_MAX_LINE_SAMPLES = 4096


class RasterSurface:
    """Numpy-backed drawing surface with pointer-event listeners."""

    def __init__(self, width: int, height: int, background: Color = (0, 0, 0)):
        self.background = background
        self._listeners: Dict[str, List[Callable]] = defaultdict(list)
        self.resize(width, height)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def resize(self, width: int, height: int) -> None:
        """Reallocate the canvas; contents are cleared to the background."""
        self.pixels = np.zeros((max(int(height), 0), max(int(width), 0), 3), dtype=np.float32)
        self.pixels[...] = np.asarray(self.background, dtype=np.float32) / 255.0

    # ------------------------------------------------------------------
    # Drawing primitives
    # ------------------------------------------------------------------
    def _blend(self, py: np.ndarray, px: np.ndarray, rgb: np.ndarray, alpha: np.ndarray) -> None:
        a = alpha[:, None].astype(np.float32)
        self.pixels[py, px] = self.pixels[py, px] * (1.0 - a) + rgb * a

    def fill(self, color: Color, alpha: float = 1.0) -> None:
        rgb = np.asarray(color, dtype=np.float32) / 255.0
        a = np.float32(min(max(alpha, 0.0), 1.0))
        self.pixels *= (1.0 - a)
        self.pixels += rgb * a

    def draw_points(self, xy, radius, color: Color, alpha) -> None:
        xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)
        n = xy.shape[0]
        if n == 0 or self.width == 0 or self.height == 0:
            return
        radius = np.broadcast_to(np.asarray(radius, dtype=np.float64), (n,))
        alpha = np.broadcast_to(np.clip(np.asarray(alpha, dtype=np.float64), 0.0, 1.0), (n,))

        keep = np.isfinite(xy).all(axis=1) & np.isfinite(radius) & (alpha > 0)
        if not keep.any():
            return
        xy, radius, alpha = xy[keep], radius[keep], alpha[keep]

        rgb = np.asarray(color, dtype=np.float32) / 255.0
        cx = np.rint(xy[:, 0]).astype(np.int64)
        cy = np.rint(xy[:, 1]).astype(np.int64)
        # Every disc covers at least its center pixel.
        r2 = np.maximum(radius, 0.5) ** 2
        r_max = int(min(np.ceil(radius.max()), _MAX_STAMP_RADIUS))

        for oy in range(-r_max, r_max + 1):
            for ox in range(-r_max, r_max + 1):
                px = cx + ox
                py = cy + oy
                m = (
                    (ox * ox + oy * oy <= r2)
                    & (px >= 0) & (px < self.width)
                    & (py >= 0) & (py < self.height)
                )
                if m.any():
                    self._blend(py[m], px[m], rgb, alpha[m])

    def draw_lines(self, starts, ends, color: Color, alpha, width: float = 1.0) -> None:
        starts = np.asarray(starts, dtype=np.float64).reshape(-1, 2)
        ends = np.asarray(ends, dtype=np.float64).reshape(-1, 2)
        n = starts.shape[0]
        if n == 0:
            return
        alpha = np.broadcast_to(np.asarray(alpha, dtype=np.float64), (n,))
        finite = np.isfinite(starts).all(axis=1) & np.isfinite(ends).all(axis=1)
        if not finite.any():
            return
        starts, ends, alpha = starts[finite], ends[finite], alpha[finite]

        longest = float(np.max(np.hypot(*(ends - starts).T)))
        samples = int(min(max(np.ceil(longest) + 1, 2), _MAX_LINE_SAMPLES))
        t = np.linspace(0.0, 1.0, samples)
        pts = starts[:, None, :] + (ends - starts)[:, None, :] * t[None, :, None]
        self.draw_points(pts.reshape(-1, 2), width * 0.5, color, np.repeat(alpha, samples))

    def draw_radial_gradient(self, center: Tuple[float, float], inner: float, outer: float,
                             stops: Sequence[GradientStop]) -> None:
        cx, cy = center
        if not (np.isfinite(cx) and np.isfinite(cy)) or outer <= 0:
            return
        x0 = max(int(np.floor(cx - outer)), 0)
        x1 = min(int(np.ceil(cx + outer)) + 1, self.width)
        y0 = max(int(np.floor(cy - outer)), 0)
        y1 = min(int(np.ceil(cy + outer)) + 1, self.height)
        if x0 >= x1 or y0 >= y1:
            return

        yy, xx = np.mgrid[y0:y1, x0:x1]
        d = np.hypot(xx - cx, yy - cy)
        span = max(outer - inner, 1e-9)
        t = np.clip((d - inner) / span, 0.0, 1.0)

        offsets = np.array([s[0] for s in stops], dtype=np.float64)
        colors = np.array([s[1] for s in stops], dtype=np.float64) / 255.0
        alphas = np.array([s[2] for s in stops], dtype=np.float64)

        a = np.interp(t, offsets, alphas)
        a[d > outer] = 0.0
        rgb = np.stack([np.interp(t, offsets, colors[:, c]) for c in range(3)], axis=-1)

        region = self.pixels[y0:y1, x0:x1]
        a = a[..., None].astype(np.float32)
        region[...] = region * (1.0 - a) + rgb.astype(np.float32) * a

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------
    def add_listener(self, event: str, callback: Callable) -> None:
        self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Callable) -> None:
        try:
            self._listeners[event].remove(callback)
        except ValueError:
            pass

    def listener_count(self, event: str = None) -> int:
        if event is None:
            return sum(len(v) for v in self._listeners.values())
        return len(self._listeners.get(event, []))

    def dispatch(self, event: str, *args) -> None:
        """Deliver a pointer event (e.g. ``dispatch("pointermove", x, y)``)."""
        for callback in list(self._listeners.get(event, [])):
            callback(*args)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def to_rgb8(self) -> np.ndarray:
        return (np.clip(self.pixels, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        plt.imsave(path, self.to_rgb8())
        return path
