"""
Keyed, cancellable delayed tasks.

Scheduling under a key replaces whatever was pending under that key, which is
all a debounce or a two-phase animation needs. Two implementations:

- BackgroundTaskScheduler: APScheduler with two single-thread executors.
  Timers (carousel phases) run on "default"; store writes run on "io", so a
  slow network write never delays a timer. Callbacks on one executor never
  run concurrently with each other.
- ManualScheduler: a virtual clock advanced explicitly, for driving the state
  machines from an external loop (and for deterministic tests).
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)


DEFAULT_EXECUTOR = "default"
IO_EXECUTOR = "io"

# Jobs rescheduled under a running key queue behind it instead of being skipped.
_MAX_INSTANCES = 8


class TaskScheduler(Protocol):
    def schedule(self, key: str, delay: float, func: Callable[[], None],
                 executor: str = DEFAULT_EXECUTOR) -> None: ...
    def cancel(self, key: str) -> bool: ...
    def pending(self, key: str) -> bool: ...


class BackgroundTaskScheduler:
    """APScheduler-backed scheduler; one job id per key."""

    def __init__(self) -> None:
        self._scheduler = BackgroundScheduler(
            executors={
                DEFAULT_EXECUTOR: ThreadPoolExecutor(max_workers=1),
                IO_EXECUTOR: ThreadPoolExecutor(max_workers=1),
            },
            job_defaults={"coalesce": True, "misfire_grace_time": None, "max_instances": _MAX_INSTANCES},
            daemon=True,
        )
        self._scheduler.start()

    def schedule(self, key: str, delay: float, func: Callable[[], None],
                 executor: str = DEFAULT_EXECUTOR) -> None:
        run_date = datetime.now(timezone.utc) + timedelta(seconds=max(0.0, delay))
        self._scheduler.add_job(
            func=func,
            trigger="date",
            run_date=run_date,
            id=key,
            executor=executor,
            replace_existing=True,
        )
        logger.debug("Scheduled %s in %.3fs", key, delay)

    def cancel(self, key: str) -> bool:
        try:
            self._scheduler.remove_job(key)
            return True
        except JobLookupError:
            return False

    def pending(self, key: str) -> bool:
        return self._scheduler.get_job(key) is not None

    def shutdown(self, wait: bool = False) -> None:
        self._scheduler.shutdown(wait=wait)


class ManualScheduler:
    """Virtual-clock scheduler. Nothing runs until ``advance`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._tasks: dict[str, tuple[float, int, Callable[[], None]]] = {}
        self._seq = itertools.count()
        self._lock = threading.RLock()

    def schedule(self, key: str, delay: float, func: Callable[[], None],
                 executor: str = DEFAULT_EXECUTOR) -> None:
        with self._lock:
            self._tasks[key] = (self.now + max(0.0, delay), next(self._seq), func)

    def cancel(self, key: str) -> bool:
        with self._lock:
            return self._tasks.pop(key, None) is not None

    def pending(self, key: str) -> bool:
        with self._lock:
            return key in self._tasks

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running due tasks in order. Returns how many ran."""
        target = self.now + seconds
        ran = 0
        while True:
            with self._lock:
                due = [(when, seq, key) for key, (when, seq, _) in self._tasks.items() if when <= target]
                if not due:
                    break
                when, _, key = min(due)
                _, _, func = self._tasks.pop(key)
                self.now = when
            func()
            ran += 1
        self.now = target
        return ran

    def run_all(self, max_tasks: int = 1000) -> int:
        """Run every pending task (including ones scheduled by tasks) in due order."""
        ran = 0
        while ran < max_tasks:
            with self._lock:
                if not self._tasks:
                    break
                horizon = max(when for when, _, _ in self._tasks.values())
            ran += self.advance(horizon - self.now)
        return ran
