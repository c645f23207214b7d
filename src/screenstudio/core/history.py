# -*- coding: utf-8 -*-
"""Bounded undo/redo history of full project-state snapshots."""

from __future__ import annotations

import logging
import time
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from screenstudio.constants import MAX_HISTORY
from screenstudio.models.project import ProjectState

logger = logging.getLogger(__name__)

INITIAL_ACTION = "Initial state"


def clone_state(state: ProjectState) -> ProjectState:
    """Structural copy; image handles are shared, not duplicated."""
    return deepcopy(state)


@dataclass(frozen=True)
class HistorySnapshot:
    """Immutable point-in-time copy of a ProjectState."""

    state: ProjectState
    action: str = ""
    timestamp: float = field(default_factory=time.time)


class HistoryEngine:
    """Undo/redo over snapshots.

    ``past`` ends with the present state; undo never drops below one
    retained entry. Recording an unchanged state is a no-op, and any new
    record clears the redo stack.
    """

    def __init__(self, max_history: int = MAX_HISTORY) -> None:
        if max_history < 1:
            raise ValueError("max_history must be >= 1")
        self.max_history = int(max_history)
        self._past: list[HistorySnapshot] = []
        self._future: list[HistorySnapshot] = []

    @property
    def past(self) -> tuple[HistorySnapshot, ...]:
        return tuple(self._past)

    @property
    def future(self) -> tuple[HistorySnapshot, ...]:
        return tuple(self._future)

    @property
    def present(self) -> ProjectState | None:
        return clone_state(self._past[-1].state) if self._past else None

    def record(self, state: ProjectState, action: str = "") -> bool:
        """Push a snapshot of ``state``; return False when nothing changed."""
        snapshot = HistorySnapshot(state=clone_state(state), action=action)
        if self._past and self._past[-1].state == snapshot.state:
            return False
        self._past.append(snapshot)
        if len(self._past) > self.max_history:
            del self._past[0 : len(self._past) - self.max_history]
        self._future.clear()
        logger.debug("History recorded '%s' (%d entries)", action, len(self._past))
        return True

    def undo(self) -> ProjectState | None:
        if len(self._past) <= 1:
            return None
        self._future.append(self._past.pop())
        return clone_state(self._past[-1].state)

    def redo(self) -> ProjectState | None:
        if not self._future:
            return None
        snapshot = self._future.pop()
        self._past.append(snapshot)
        return clone_state(snapshot.state)

    def can_undo(self) -> bool:
        return len(self._past) > 1

    def can_redo(self) -> bool:
        return bool(self._future)

    def undo_action_name(self) -> str:
        if len(self._past) > 1:
            return self._past[-1].action or "Last action"
        return ""

    def redo_action_name(self) -> str:
        if self._future:
            return self._future[-1].action or "Last action"
        return ""

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()

    def initialize(self, state: ProjectState) -> None:
        self.clear()
        self.record(state, INITIAL_ACTION)

    def info(self) -> dict[str, Any]:
        return {
            "undo_count": max(0, len(self._past) - 1),
            "redo_count": len(self._future),
            "can_undo": self.can_undo(),
            "can_redo": self.can_redo(),
        }
