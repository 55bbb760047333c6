"""
Tool-state synchronisation: load on mount, save on change, clear on completion.

Each interactive tool (quiz, flashcards, tutor) owns one ``ToolStateSync``
bound to a (user, session, tool) triple. Persistence is best-effort: store
failures are logged and swallowed, never retried, and never reach the user.

Rules enforced here:
- nothing is written until ``load`` has completed (``state_loaded``), so a
  default state can never overwrite a saved one that is still loading;
- with a debounce, only the value left after ``debounce_seconds`` of quiet is
  written, and at most one write is pending per tool;
- ``clear`` cancels a pending debounced write before deleting, so a stale
  write cannot resurrect state after completion;
- store calls run outside the state lock, and debounced writes run on the
  scheduler's io executor, so a slow store never blocks a caller or a timer.
  Writes are serialised and numbered; one older than the last write or the
  last clear is discarded.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Protocol

from models import TOOLS
from scheduling import IO_EXECUTOR, TaskScheduler

logger = logging.getLogger(__name__)

_NOTHING = object()


class ToolStateStore(Protocol):
    """Keyed upsert/delete store, already scoped to one user."""

    user_id: Any

    def get(self, session_id: str, tool: str) -> dict | None: ...
    def save(self, session_id: str, tool: str, state: dict) -> None: ...
    def clear(self, session_id: str, tool: str) -> None: ...


class ToolStateSync:
    def __init__(
        self,
        store: ToolStateStore,
        session_id: str,
        tool: str,
        scheduler: TaskScheduler | None = None,
        debounce_seconds: float = 0.0,
    ) -> None:
        if tool not in TOOLS:
            raise ValueError(f"Unknown tool: {tool}")
        if debounce_seconds > 0 and scheduler is None:
            raise ValueError("A scheduler is required for debounced saves")
        self.store = store
        self.session_id = str(session_id)
        self.tool = tool
        self.scheduler = scheduler
        self.debounce_seconds = debounce_seconds
        self.state_loaded = False
        self._pending: Any = _NOTHING
        self._pending_seq = 0
        self._seq = 0
        self._floor = 0  # guarded by _write_lock; writes numbered at or below it are stale
        self._lock = threading.RLock()
        self._write_lock = threading.Lock()

    @property
    def key(self) -> str:
        return f"tool-state:{self.store.user_id}:{self.session_id}:{self.tool}"

    def load(self) -> dict | None:
        """Fetch the saved state. Store errors count as 'no saved state'."""
        try:
            state = self.store.get(self.session_id, self.tool)
        except Exception:
            logger.warning("Loading %s state failed", self.key, exc_info=True)
            state = None
        with self._lock:
            self.state_loaded = True
        return state

    def mark_loaded(self) -> None:
        """Open the save gate without a fetch (nothing to restore)."""
        with self._lock:
            self.state_loaded = True

    def save(self, state: dict) -> bool:
        """Persist ``state`` (now or debounced). Returns False if dropped before load."""
        with self._lock:
            if not self.state_loaded:
                logger.debug("Dropping %s save issued before load completed", self.key)
                return False
            snapshot = copy.deepcopy(state)
            self._seq += 1
            seq = self._seq
            if self.debounce_seconds > 0:
                self._pending, self._pending_seq = snapshot, seq
                self.scheduler.schedule(self.key, self.debounce_seconds, self._fire, executor=IO_EXECUTOR)
                return True
        self._write(snapshot, seq)
        return True

    def flush(self) -> None:
        """Write any pending debounced value immediately."""
        if self.scheduler is not None:
            self.scheduler.cancel(self.key)
        self._fire()

    def clear(self) -> None:
        """Drop pending writes and delete the stored state.

        Waits for a write already in flight, so the delete always lands last.
        """
        with self._lock:
            if self.scheduler is not None:
                self.scheduler.cancel(self.key)
            self._pending = _NOTHING
            cleared_at = self._seq
        with self._write_lock:
            self._floor = max(self._floor, cleared_at)
            try:
                self.store.clear(self.session_id, self.tool)
            except Exception:
                logger.warning("Clearing %s state failed", self.key, exc_info=True)

    @property
    def has_pending(self) -> bool:
        return self._pending is not _NOTHING

    def _fire(self) -> None:
        with self._lock:
            state, self._pending = self._pending, _NOTHING
            seq = self._pending_seq
        if state is not _NOTHING:
            self._write(state, seq)

    def _write(self, state: dict, seq: int) -> None:
        with self._write_lock:
            if seq <= self._floor:
                logger.debug("Discarding stale %s write #%d", self.key, seq)
                return
            self._floor = seq
            try:
                self.store.save(self.session_id, self.tool, state)
            except Exception:
                logger.warning("Saving %s state failed", self.key, exc_info=True)
