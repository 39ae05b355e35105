# src/ciel/core/contract.py
"""
SimulationEngine: the lifecycle every engine shares.

State machine
-------------
IDLE --start()--> RUNNING --stop()--> IDLE
any  --destroy()--> DESTROYED (terminal)

While RUNNING the engine keeps exactly one frame callback pending on its
scheduler. Each callback runs ``tick()`` (``step()`` then ``draw()``) and
reschedules itself. ``stop()`` cancels the pending callback and nothing else.

Construction sizes the engine against its surface and runs ``setup()``
(seeding + warm-up). A zero-sized surface defers ``setup()``: the engine
asks the scheduler for a frame and retries until the surface has dimensions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Dict, Mapping, Optional

from ciel.core.definitions import SimulationDefinition, get_default_params, merge_params
from ciel.core.enums import EngineState
from ciel.core.logging import logger
from ciel.core.loop import FrameScheduler, ManualFrameDriver
from ciel.core.surface import Surface
from ciel.core.utils import make_rng

ActionResult = Optional[Dict[str, float]]


class SimulationEngine(ABC):
    """Base class for every engine bound to one drawing surface."""

    definition: SimulationDefinition

    def __init__(
        self,
        surface: Surface,
        params: Optional[Mapping[str, float]] = None,
        *,
        scheduler: Optional[FrameScheduler] = None,
        seed=None,
    ):
        self.surface = surface
        self.scheduler = scheduler if scheduler is not None else ManualFrameDriver()
        self.rng = make_rng(seed)
        self.params: Dict[str, float] = merge_params(
            self.definition, get_default_params(self.definition), params or {}
        )

        self.state = EngineState.IDLE
        self.ready = False
        self.width = 0
        self.height = 0
        self.frame_count = 0
        self.last_timestamp_ms: Optional[float] = None
        self.last_frame_ms: Optional[float] = None
        self._frame_handle: Optional[int] = None
        self._init_handle: Optional[int] = None

        self.attach()
        self._initialize()

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------
    @abstractmethod
    def setup(self) -> None:
        """Build all simulation state for the current size and warm it up."""

    @abstractmethod
    def step(self) -> None:
        """Advance the simulation by one fixed step."""

    @abstractmethod
    def draw(self) -> None:
        """Project the current state onto the surface."""

    @abstractmethod
    def reset(self) -> None:
        """Reinitialize simulation state (parameters are already at defaults)."""

    def action_handlers(self) -> Dict[str, Callable[[], ActionResult]]:
        """Action id -> handler. ``reset`` is handled by the base class."""
        return {}

    def attach(self) -> None:
        """Register surface listeners. Paired with ``detach``."""

    def detach(self) -> None:
        """Remove everything ``attach`` registered."""

    def on_resize(self) -> None:
        """Recompute size-dependent terms after ``width``/``height`` changed."""

    def on_params_changed(self) -> None:
        """Refresh state derived from ``params`` after ``update_params``."""

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------
    def _measure(self) -> None:
        self.width = int(self.surface.width)
        self.height = int(self.surface.height)

    def _initialize(self) -> None:
        self._measure()
        if self.width <= 0 or self.height <= 0:
            logger.debug(f"{self.definition.id}: surface not ready ({self.width}x{self.height}); deferring setup")
            self._init_handle = self.scheduler.request_frame(self._retry_initialize)
            return

        self._init_handle = None
        self.setup()
        self.ready = True
        logger.debug(f"{self.definition.id}: ready at {self.width}x{self.height}")
        if self.state is EngineState.RUNNING and self._frame_handle is None:
            self._frame_handle = self.scheduler.request_frame(self._on_frame)

    def _retry_initialize(self, _timestamp_ms: float) -> None:
        self._init_handle = None
        if self.state is EngineState.DESTROYED or self.ready:
            return
        self._initialize()

    # ------------------------------------------------------------------
    # Frame loop
    # ------------------------------------------------------------------
    def tick(self, dt_ms: Optional[float] = None) -> None:
        """One frame: integrate, then draw.

        Integration always uses the fixed step of the simulation; ``dt_ms``
        (time since the previous frame) is only recorded.
        """
        self.last_frame_ms = dt_ms
        self.step()
        self.draw()
        self.frame_count += 1

    def _on_frame(self, timestamp_ms: float) -> None:
        self._frame_handle = None
        if self.state is not EngineState.RUNNING:
            return
        dt_ms = None if self.last_timestamp_ms is None else timestamp_ms - self.last_timestamp_ms
        self.last_timestamp_ms = timestamp_ms
        self.tick(dt_ms)
        if self.state is EngineState.RUNNING:
            self._frame_handle = self.scheduler.request_frame(self._on_frame)

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self.state is EngineState.RUNNING

    def start(self) -> None:
        if self.state is EngineState.DESTROYED:
            logger.debug(f"{self.definition.id}: start() after destroy ignored")
            return
        if self.state is EngineState.RUNNING:
            return
        self.state = EngineState.RUNNING
        if self.ready:
            self._frame_handle = self.scheduler.request_frame(self._on_frame)
        logger.debug(f"{self.definition.id}: started")

    def stop(self) -> None:
        if self.state is not EngineState.RUNNING:
            return
        self.scheduler.cancel_frame(self._frame_handle)
        self._frame_handle = None
        self.state = EngineState.IDLE
        logger.debug(f"{self.definition.id}: stopped")

    def destroy(self) -> None:
        if self.state is EngineState.DESTROYED:
            return
        self.stop()
        if self._init_handle is not None:
            self.scheduler.cancel_frame(self._init_handle)
            self._init_handle = None
        self.detach()
        self.state = EngineState.DESTROYED
        logger.debug(f"{self.definition.id}: destroyed")

    def resize(self) -> None:
        """Pick up new surface dimensions without touching simulation state."""
        if self.state is EngineState.DESTROYED:
            return
        self._measure()
        if self.ready:
            self.on_resize()

    def update_params(self, params: Mapping[str, float]) -> None:
        """Replace the parameter set; undeclared keys are dropped."""
        self.params = merge_params(self.definition, self.params, params)
        if self.ready:
            self.on_params_changed()

    def action(self, action_id: str) -> ActionResult:
        """Run a declared action. Unknown ids are ignored and return None."""
        if action_id not in self.definition.action_ids:
            logger.debug(f"{self.definition.id}: unknown action '{action_id}' ignored")
            return None
        if action_id == "reset":
            self.params = get_default_params(self.definition)
            if self.ready:
                self.reset()
            return dict(self.params)
        handler = self.action_handlers().get(action_id)
        if handler is None or not self.ready:
            return None
        logger.debug(f"{self.definition.id}: action '{action_id}'")
        return handler()
