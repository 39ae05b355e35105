# ciel/core/loop.py
"""
Frame scheduling.

Engines never loop on their own: each frame they hand a callback to a
``FrameScheduler`` and return. Whoever owns the scheduler decides when the
next frame happens (display refresh, a test, a headless export).
"""

from itertools import count
from typing import Callable, Dict, Optional, Protocol

FrameCallback = Callable[[float], None]


class FrameScheduler(Protocol):
    def request_frame(self, callback: FrameCallback) -> int:
        """Schedule ``callback(timestamp_ms)`` for the next frame; returns a handle."""

    def cancel_frame(self, handle: int) -> None:
        """Drop a pending callback. Unknown handles are ignored."""


class ManualFrameDriver:
    """Deterministic scheduler: frames happen only when ``run_frame`` is called.

    Callbacks requested while a frame is running are deferred to the next
    frame, matching display-refresh semantics.
    """

    def __init__(self, frame_interval_ms: float = 1000.0 / 60.0):
        self.frame_interval_ms = frame_interval_ms
        self.timestamp_ms = 0.0
        self.frames_run = 0
        self._handles = count(1)
        self._pending: Dict[int, FrameCallback] = {}

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._handles)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: Optional[int]) -> None:
        if handle is not None:
            self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def run_frame(self) -> int:
        """Advance the clock one frame and fire every callback pending at its start."""
        self.timestamp_ms += self.frame_interval_ms
        due, self._pending = self._pending, {}
        for callback in due.values():
            callback(self.timestamp_ms)
        self.frames_run += 1
        return len(due)

    def run(self, frames: int) -> None:
        for _ in range(frames):
            self.run_frame()


__all__ = [
    "FrameCallback",
    "FrameScheduler",
    "ManualFrameDriver",
]
