# -*- coding: utf-8 -*-
"""Debounced durable saves: many edits, one write after a quiet period."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from screenstudio.constants import SAVE_DEBOUNCE_MS

logger = logging.getLogger(__name__)

SaveCallback = Callable[[str], None]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def threading_timer_factory(delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
    timer = threading.Timer(delay_seconds, callback)
    timer.daemon = True
    timer.name = "screenstudio-autosave"
    timer.start()
    return timer


class SaveScheduler:
    """Coalesce save requests per project into a single delayed write.

    Each ``schedule_save`` call cancels the project's armed timer and starts
    a new one. The save callback receives only the project id and must read
    the current state itself when it fires.
    """

    def __init__(
        self,
        save_callback: SaveCallback,
        delay_ms: int = SAVE_DEBOUNCE_MS,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self._save_callback = save_callback
        self.delay_ms = int(delay_ms)
        self._timer_factory = timer_factory or threading_timer_factory
        self._lock = threading.Lock()
        self._timers: dict[str, tuple[int, TimerHandle]] = {}
        self._generation = 0

    def schedule_save(self, project_id: str) -> None:
        with self._lock:
            self._generation += 1
            token = self._generation
            previous = self._timers.pop(project_id, None)
            if previous is not None:
                previous[1].cancel()
            handle = self._timer_factory(self.delay_ms / 1000.0, lambda: self._fire(project_id, token))
            self._timers[project_id] = (token, handle)

    def cancel(self, project_id: str) -> bool:
        """Drop the pending write for ``project_id`` without running it."""
        with self._lock:
            pending = self._timers.pop(project_id, None)
        if pending is None:
            return False
        pending[1].cancel()
        logger.debug("Cancelled pending save for project %s", project_id)
        return True

    def cancel_all(self) -> None:
        with self._lock:
            pending = list(self._timers.values())
            self._timers.clear()
        for _, handle in pending:
            handle.cancel()

    def flush(self, project_id: str | None = None) -> int:
        """Run pending writes now (one project or all); return how many ran."""
        with self._lock:
            if project_id is None:
                due = list(self._timers.items())
                self._timers.clear()
            else:
                pending = self._timers.pop(project_id, None)
                due = [(project_id, pending)] if pending is not None else []
        for pid, (_, handle) in due:
            handle.cancel()
            self._run(pid)
        return len(due)

    def is_pending(self, project_id: str | None = None) -> bool:
        with self._lock:
            if project_id is None:
                return bool(self._timers)
            return project_id in self._timers

    def _fire(self, project_id: str, token: int) -> None:
        with self._lock:
            pending = self._timers.get(project_id)
            if pending is None or pending[0] != token:
                return
            del self._timers[project_id]
        self._run(project_id)

    def _run(self, project_id: str) -> None:
        try:
            self._save_callback(project_id)
        except Exception:
            logger.exception("Scheduled save failed for project %s", project_id)
