# -*- coding: utf-8 -*-
"""Shared pytest fixtures."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable
from pathlib import Path

import pytest


SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


def encode_png(width: int = 4, height: int = 8) -> bytes:
    import cv2
    import numpy as np

    ok, encoded = cv2.imencode(".png", np.full((height, width, 3), 200, dtype=np.uint8))
    assert ok
    return encoded.tobytes()


class _ManualTimer:
    def __init__(self, delay_seconds: float, callback: Callable[[], None]) -> None:
        self.delay_seconds = delay_seconds
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled and not self.fired:
            self.fired = True
            self.callback()


class ManualTimers:
    """Timer factory whose timers only fire when the test says so."""

    def __init__(self) -> None:
        self.created: list[_ManualTimer] = []

    def factory(self, delay_seconds: float, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(delay_seconds, callback)
        self.created.append(timer)
        return timer

    @property
    def active(self) -> list[_ManualTimer]:
        return [timer for timer in self.created if not timer.cancelled and not timer.fired]

    def fire_all(self) -> int:
        due = self.active
        for timer in due:
            timer.fire()
        return len(due)


@pytest.fixture
def tiny_png_bytes() -> bytes:
    return encode_png(1, 1)


@pytest.fixture
def png_bytes() -> bytes:
    return encode_png(4, 8)


@pytest.fixture
def tablet_png_bytes() -> bytes:
    return encode_png(6, 8)


@pytest.fixture
def manual_timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "studio.sqlite3"


@pytest.fixture
def default_config() -> dict:
    from screenstudio.config import get_default_config

    return get_default_config()


@pytest.fixture
def make_controller(db_path: Path, manual_timers: ManualTimers):
    """Factory for started controllers on a shared on-disk database."""
    from screenstudio.core.controller import ProjectController
    from screenstudio.storage.database import ProjectDatabase
    from screenstudio.storage.repository import ProjectRepository

    started: list[ProjectController] = []

    def _make(**kwargs) -> ProjectController:
        languages = kwargs.pop("languages", ["en"])
        start = kwargs.pop("start", True)
        repository = ProjectRepository(ProjectDatabase(db_path), default_languages=languages)
        kwargs.setdefault("timer_factory", manual_timers.factory)
        controller = ProjectController(repository, **kwargs)
        if start:
            controller.start()
        started.append(controller)
        return controller

    yield _make
    for controller in started:
        controller.shutdown()


@pytest.fixture
def controller(make_controller):
    return make_controller()


@pytest.fixture
def save_calls(monkeypatch) -> list[str]:
    """Record every ProjectRepository.save call (project ids)."""
    from screenstudio.storage.repository import ProjectRepository

    calls: list[str] = []
    original = ProjectRepository.save

    def _save(self, project_id, state):
        calls.append(project_id)
        return original(self, project_id, state)

    monkeypatch.setattr(ProjectRepository, "save", _save)
    return calls


@pytest.fixture(scope="session")
def qt_app():
    qt_core = pytest.importorskip("PyQt6.QtCore")
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = qt_core.QCoreApplication.instance() or qt_core.QCoreApplication([])
    yield app
