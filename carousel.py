"""
Flashcard carousel transitions.

    IDLE --navigate--> SLIDING_OUT --300ms--> SLIDING_IN --300ms--> IDLE

The index changes at the SLIDING_OUT -> SLIDING_IN boundary. Requests that
arrive while a transition runs (or while the deck is busy translating) are
dropped, not queued.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from enum import Enum

from scheduling import TaskScheduler

logger = logging.getLogger(__name__)

DEFAULT_PHASE_SECONDS = 0.3

_instance_ids = itertools.count(1)


class CarouselPhase(str, Enum):
    IDLE = "idle"
    SLIDING_OUT = "sliding_out"
    SLIDING_IN = "sliding_in"


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


class CarouselController:
    def __init__(
        self,
        size: int,
        scheduler: TaskScheduler,
        phase_seconds: float = DEFAULT_PHASE_SECONDS,
        current_index: int = 0,
        on_index_change: Callable[[int], None] | None = None,
        on_idle: Callable[[int], None] | None = None,
    ) -> None:
        self.size = max(0, size)
        self.scheduler = scheduler
        self.phase_seconds = phase_seconds
        self.current_index = current_index if 0 <= current_index < self.size else 0
        self.on_index_change = on_index_change
        self.on_idle = on_idle

        self.phase = CarouselPhase.IDLE
        self.direction: Direction | None = None
        self.is_flipped = False
        self.busy = False
        self._target: int | None = None
        self._key = f"carousel:{next(_instance_ids)}"
        self._lock = threading.RLock()

    @property
    def is_animating(self) -> bool:
        return self.phase is not CarouselPhase.IDLE

    def set_busy(self, busy: bool) -> None:
        """Block navigation while something else (a translation fetch) is in flight."""
        with self._lock:
            self.busy = busy

    def next(self) -> bool:
        if self.size == 0:
            return False
        return self._start((self.current_index + 1) % self.size, Direction.FORWARD)

    def prev(self) -> bool:
        if self.size == 0:
            return False
        return self._start((self.current_index - 1 + self.size) % self.size, Direction.BACKWARD)

    def jump(self, target_index: int) -> bool:
        if not 0 <= target_index < self.size:
            return False
        direction = Direction.FORWARD if target_index > self.current_index else Direction.BACKWARD
        return self._start(target_index, direction)

    def flip(self) -> bool:
        with self._lock:
            if self.size == 0 or self.is_animating:
                return False
            self.is_flipped = not self.is_flipped
            return True

    def _start(self, target: int, direction: Direction) -> bool:
        with self._lock:
            if self.is_animating or self.busy or target == self.current_index:
                logger.debug("Carousel request to %d dropped (phase=%s busy=%s)",
                             target, self.phase.value, self.busy)
                return False
            self.phase = CarouselPhase.SLIDING_OUT
            self.direction = direction
            self.is_flipped = False
            self._target = target
            self.scheduler.schedule(self._key, self.phase_seconds, self._finish_slide_out)
            return True

    def _finish_slide_out(self) -> None:
        with self._lock:
            self.current_index = self._target
            self._target = None
            self.phase = CarouselPhase.SLIDING_IN
            self.scheduler.schedule(self._key, self.phase_seconds, self._finish_slide_in)
            index = self.current_index
        if self.on_index_change:
            self.on_index_change(index)

    def _finish_slide_in(self) -> None:
        with self._lock:
            self.phase = CarouselPhase.IDLE
            self.direction = None
            index = self.current_index
        if self.on_idle:
            self.on_idle(index)
