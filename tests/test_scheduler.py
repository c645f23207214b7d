# -*- coding: utf-8 -*-
"""Tests for the debounced save scheduler."""

from __future__ import annotations

import threading

from screenstudio.core.scheduler import SaveScheduler


def test_many_requests_coalesce_into_one_write(manual_timers) -> None:
    saved: list[str] = []
    scheduler = SaveScheduler(saved.append, delay_ms=1000, timer_factory=manual_timers.factory)
    for _ in range(20):
        scheduler.schedule_save("p1")
    assert len(manual_timers.active) == 1
    assert manual_timers.active[0].delay_seconds == 1.0
    manual_timers.fire_all()
    assert saved == ["p1"]
    assert scheduler.is_pending() is False


def test_projects_are_scheduled_independently(manual_timers) -> None:
    saved: list[str] = []
    scheduler = SaveScheduler(saved.append, timer_factory=manual_timers.factory)
    scheduler.schedule_save("a")
    scheduler.schedule_save("b")
    manual_timers.fire_all()
    assert sorted(saved) == ["a", "b"]


def test_cancel_drops_pending_write(manual_timers) -> None:
    saved: list[str] = []
    scheduler = SaveScheduler(saved.append, timer_factory=manual_timers.factory)
    scheduler.schedule_save("a")
    assert scheduler.cancel("a") is True
    assert scheduler.cancel("a") is False
    manual_timers.fire_all()
    assert saved == []


def test_stale_timer_does_not_fire(manual_timers) -> None:
    saved: list[str] = []
    scheduler = SaveScheduler(saved.append, timer_factory=manual_timers.factory)
    scheduler.schedule_save("a")
    stale = manual_timers.created[0]
    scheduler.schedule_save("a")
    stale.callback()
    assert saved == []
    manual_timers.fire_all()
    assert saved == ["a"]


def test_flush_runs_pending_now(manual_timers) -> None:
    saved: list[str] = []
    scheduler = SaveScheduler(saved.append, timer_factory=manual_timers.factory)
    scheduler.schedule_save("a")
    scheduler.schedule_save("b")
    assert scheduler.flush("a") == 1
    assert saved == ["a"]
    assert scheduler.is_pending("b") is True
    assert scheduler.flush() == 1
    assert saved == ["a", "b"]
    assert manual_timers.fire_all() == 0


def test_failing_save_is_logged_not_raised(manual_timers, caplog) -> None:
    def _fail(project_id: str) -> None:
        raise OSError("disk full")

    scheduler = SaveScheduler(_fail, timer_factory=manual_timers.factory)
    scheduler.schedule_save("a")
    manual_timers.fire_all()
    assert "Scheduled save failed" in caplog.text


def test_threading_timer_fires_once() -> None:
    done = threading.Event()
    saved: list[str] = []

    def _save(project_id: str) -> None:
        saved.append(project_id)
        done.set()

    scheduler = SaveScheduler(_save, delay_ms=20)
    scheduler.schedule_save("a")
    scheduler.schedule_save("a")
    assert done.wait(2.0) is True
    assert saved == ["a"]
