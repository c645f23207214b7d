# -*- coding: utf-8 -*-
"""Qt signal bridge for the project controller."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from screenstudio.core.controller import ProjectController
from screenstudio.core.scheduler import TimerHandle

logger = logging.getLogger(__name__)


class _QtTimerHandle:
    """Single-shot QTimer that fires on the Qt event loop."""

    def __init__(self, parent: QObject, delay_seconds: float, callback: Callable[[], None]) -> None:
        self._timer = QTimer(parent)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(delay_seconds * 1000)))
        self._timer.timeout.connect(callback)
        self._timer.timeout.connect(self._timer.deleteLater)
        self._timer.start()

    def cancel(self) -> None:
        try:
            self._timer.stop()
            self._timer.deleteLater()
        except RuntimeError:
            # underlying C++ object already deleted after firing
            pass


def qt_timer_factory(parent: QObject) -> Callable[[float, Callable[[], None]], TimerHandle]:
    def _factory(delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
        return _QtTimerHandle(parent, delay_seconds, callback)

    return _factory


class QtProjectBridge(QObject):
    """Expose controller callbacks as Qt signals for widgets."""

    state_changed = pyqtSignal(str)
    history_changed = pyqtSignal(bool, bool)
    migration_required = pyqtSignal(str)
    error_occurred = pyqtSignal(str)

    def __init__(self, controller: ProjectController, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.controller = controller
        controller.state_changed = self.state_changed.emit
        controller.history_changed = self.history_changed.emit
        controller.migration_required = self.migration_required.emit
        controller.error_occurred = self.error_occurred.emit

    @classmethod
    def from_config(cls, config: dict[str, Any], **kwargs: Any) -> QtProjectBridge:
        """Build a controller whose autosave timer runs on the Qt event loop."""
        timer_parent = QObject()
        controller = ProjectController.from_config(config, timer_factory=qt_timer_factory(timer_parent), **kwargs)
        bridge = cls(controller)
        timer_parent.setParent(bridge)
        return bridge

    def undo(self) -> bool:
        return self.controller.undo()

    def redo(self) -> bool:
        return self.controller.redo()

    def undo_tooltip(self) -> str:
        history = self.controller.history
        return f"Undo: {history.undo_action_name()}" if history.can_undo() else "Nothing to undo"

    def redo_tooltip(self) -> str:
        history = self.controller.history
        return f"Redo: {history.redo_action_name()}" if history.can_redo() else "Nothing to redo"
