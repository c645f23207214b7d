# -*- coding: utf-8 -*-
"""Scenario tests for the project controller."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from screenstudio.constants import MAX_FILE_SIZE, SCHEMA_VERSION
from screenstudio.core.controller import ProjectController, ProjectOperationError
from screenstudio.core.localization import ConflictChoice, resolve_completeness
from screenstudio.integrations.translator import TranslationError
from screenstudio.storage.database import ProjectDatabase

LEGACY_RECORD = {
    "id": "old",
    "screenshots": [{"src": "", "name": "intro.png"}],
    "selectedIndex": 999,
    "background": {"type": "solid", "solid": "#202020"},
    "text": {"headline": "Legacy"},
}


def _seed(db_path: Path, project_id: str, record: dict) -> None:
    database = ProjectDatabase(db_path)
    database.put_meta("projects", [{"id": project_id, "name": project_id.title()}])
    database.put_meta("currentProject", project_id)
    database.put_project(project_id, record)
    database.close()


class _Renderer:
    def __init__(self) -> None:
        self.calls: list[tuple[object, str]] = []

    def render(self, screenshot, language: str) -> None:
        self.calls.append((screenshot, language))


class _Translator:
    def __init__(self, drop: str | None = None) -> None:
        self.drop = drop
        self.calls: list[tuple[str, list[str], list[str]]] = []

    def translate_batch(self, source_lang, target_langs, texts):
        self.calls.append((source_lang, list(target_langs), list(texts)))
        return {lang: [f"{lang}:{text}" for text in texts] for lang in target_langs if lang != self.drop}


def test_start_creates_and_writes_default_project(controller: ProjectController) -> None:
    assert [project.id for project in controller.projects] == ["default"]
    assert controller.active_project_id == "default"
    assert controller.repository.read_record("default")["schemaVersion"] == SCHEMA_VERSION


def test_rapid_edits_produce_one_write(controller: ProjectController, manual_timers, save_calls) -> None:
    controller.add_screenshot("a.png")
    for step in range(20):
        controller.set_field("screenshot", "scale", 50 + step)
    assert save_calls == []
    manual_timers.fire_all()
    assert save_calls == ["default"]
    assert controller.repository.read_record("default")["screenshots"][0]["screenshot"]["scale"] == 69


def test_edits_survive_restart(make_controller) -> None:
    first = make_controller(languages=["en", "de"])
    first.add_screenshot("a.png")
    first.store.set_text("headline", "Hello")
    first.shutdown()

    second = make_controller()
    assert second.state.project_languages == ["en", "de"]
    assert second.state.screenshots[0].text["headlines"]["en"] == "Hello"


def test_stale_selected_index_is_clamped_on_load(db_path: Path, make_controller) -> None:
    record = {
        "id": "p1",
        "schemaVersion": SCHEMA_VERSION,
        "screenshots": [{"name": "a.png"}, {"name": "b.png"}],
        "selectedIndex": 999,
    }
    _seed(db_path, "p1", record)
    controller = make_controller()
    assert controller.migration_pending is False
    assert controller.state.selected_index == 1
    assert controller.store.current_screenshot().name == "b.png"


def test_delete_cancels_pending_save(controller: ProjectController, manual_timers, save_calls) -> None:
    other = controller.create_project("Second")
    controller.add_screenshot("a.png")
    assert controller.scheduler.is_pending(other.id) is True

    controller.delete_project(other.id)
    manual_timers.fire_all()
    assert other.id not in save_calls[1:]
    assert controller.repository.read_record(other.id) is None
    assert controller.active_project_id == "default"
    assert [project.id for project in controller.repository.list_projects()] == ["default"]


def test_last_project_cannot_be_deleted(controller: ProjectController) -> None:
    with pytest.raises(ProjectOperationError):
        controller.delete_project("default")
    with pytest.raises(ProjectOperationError):
        controller.delete_project("missing")
    assert controller.repository.read_record("default") is not None


def test_switch_flushes_outgoing_project(controller: ProjectController) -> None:
    controller.add_screenshot("a.png")
    controller.set_field("background", "solid", "#ff0000")
    second = controller.create_project("Second")
    assert controller.active_project_id == second.id
    record = controller.repository.read_record("default")
    assert record["screenshots"][0]["background"]["solid"] == "#ff0000"

    controller.switch_project("default")
    assert controller.state.screenshots[0].background["solid"] == "#ff0000"
    assert controller.repository.current_project_id() == "default"
    assert controller.history.can_undo() is False


def test_rename_project(controller: ProjectController) -> None:
    controller.rename_project("default", "  Launch  ")
    assert controller.repository.list_projects()[0].name == "Launch"
    with pytest.raises(ProjectOperationError):
        controller.rename_project("default", " ")
    with pytest.raises(ProjectOperationError):
        controller.rename_project("missing", "x")


def test_remove_last_language_rejected(controller: ProjectController) -> None:
    errors: list[str] = []
    controller.error_occurred = errors.append
    assert controller.remove_language("en") is False
    assert controller.state.project_languages == ["en"]
    assert errors == ["A project needs at least one language."]


def test_add_and_remove_language(controller: ProjectController) -> None:
    controller.add_screenshot("a.png")
    assert controller.add_language("de") is True
    assert controller.state.screenshots[0].text["headlines"]["de"] == ""
    assert controller.remove_language("de") is True
    assert controller.history.undo_action_name() == "Remove language de"


def test_upload_routes_language_variants(make_controller, png_bytes: bytes) -> None:
    controller = make_controller(languages=["en", "de"])
    report = controller.upload_files(
        [("S1_en.png", png_bytes), ("S1_de.png", png_bytes), ("other_en.png", png_bytes)]
    )
    screenshots = controller.state.screenshots
    assert report.created == ["S1_en.png", "other_en.png"]
    assert report.variants == ["S1_de.png"]
    assert len(screenshots) == 2
    assert resolve_completeness(screenshots[0], controller.state.project_languages) is True
    assert resolve_completeness(screenshots[1], controller.state.project_languages) is False
    assert screenshots[0].device_type == "iphone"
    assert controller.history.undo_action_name() == "Upload screenshots"


def test_upload_infers_tablet_device(controller: ProjectController, tablet_png_bytes: bytes) -> None:
    controller.upload_files([("pad.png", tablet_png_bytes)])
    assert controller.state.screenshots[0].device_type == "ipad"


def test_upload_adds_unknown_language(controller: ProjectController, png_bytes: bytes) -> None:
    controller.upload_files([("S1_fr.png", png_bytes)])
    assert "fr" in controller.state.project_languages


@pytest.mark.parametrize(
    ("choice", "count", "field"),
    [
        (ConflictChoice.REPLACE, 1, "replaced"),
        (ConflictChoice.CREATE_NEW, 2, "created"),
        (ConflictChoice.IGNORE, 1, "ignored"),
    ],
)
def test_upload_conflict_choices(controller: ProjectController, png_bytes: bytes, choice, count, field) -> None:
    controller.upload_files([("S1_en.png", png_bytes)])
    original = controller.state.screenshots[0].localized_images["en"].image
    report = controller.upload_files([("S1_en.png", png_bytes)], conflict_resolver=lambda plan: choice)
    assert len(controller.state.screenshots) == count
    assert "S1_en.png" in getattr(report, field)
    replaced = controller.state.screenshots[0].localized_images["en"].image is not original
    assert replaced is (choice == ConflictChoice.REPLACE)


def test_upload_conflict_without_resolver_is_unresolved(controller: ProjectController, png_bytes: bytes) -> None:
    controller.upload_files([("S1_en.png", png_bytes)])
    report = controller.upload_files([("S1_en.png", png_bytes)])
    assert [plan.filename for plan in report.unresolved] == ["S1_en.png"]
    assert report.changed is False


def test_bad_uploads_do_not_stop_the_batch(controller: ProjectController, png_bytes: bytes) -> None:
    errors: list[str] = []
    controller.error_occurred = errors.append
    report = controller.upload_files(
        [
            ("notes.txt", b"hello"),
            ("huge.png", b"\0" * (MAX_FILE_SIZE + 1)),
            ("broken.png", b"not an image"),
            ("good.png", png_bytes),
        ]
    )
    assert set(report.errors) == {"notes.txt", "huge.png", "broken.png"}
    assert report.created == ["good.png"]
    assert len(errors) == 3


def test_undo_redo_restores_settings(controller: ProjectController) -> None:
    history_events: list[tuple[bool, bool]] = []
    controller.history_changed = lambda can_undo, can_redo: history_events.append((can_undo, can_redo))
    controller.add_screenshot("a.png")
    default_solid = controller.store.get_field("background", "solid")
    controller.set_field("background", "solid", "#ff0000")
    controller.checkpoint("Change background")

    assert controller.undo() is True
    assert controller.store.get_field("background", "solid") == default_solid
    assert history_events[-1] == (True, True)
    assert controller.redo() is True
    assert controller.store.get_field("background", "solid") == "#ff0000"
    assert controller.redo() is False
    assert controller.history_info()["undo_count"] == 2


def test_migrated_project_waits_for_confirmation(db_path: Path, make_controller, manual_timers) -> None:
    _seed(db_path, "old", LEGACY_RECORD)
    controller = make_controller(start=False)
    prompts: list[str] = []
    controller.migration_required = prompts.append
    controller.start()

    assert prompts == ["old"]
    assert controller.migration_pending is True
    assert controller.state.selected_index == 0
    assert controller.state.defaults["text"]["headlines"]["en"] == "Legacy"

    controller.set_field("background", "solid", "#000000")
    manual_timers.fire_all()
    assert "schemaVersion" not in controller.repository.read_record("old")

    assert controller.confirm_migration() is True
    stored = controller.repository.read_record("old")
    assert stored["schemaVersion"] == SCHEMA_VERSION
    assert stored["screenshots"][0]["background"]["solid"] == "#000000"
    assert controller.confirm_migration() is False


def test_declined_migration_leaves_record(db_path: Path, make_controller) -> None:
    _seed(db_path, "old", LEGACY_RECORD)
    controller = make_controller()
    controller.decline_migration()
    controller.shutdown()
    database = ProjectDatabase(db_path)
    assert database.get_project("old") == LEGACY_RECORD
    database.close()


def test_migration_runs_once(db_path: Path, make_controller) -> None:
    _seed(db_path, "old", LEGACY_RECORD)
    first = make_controller()
    first.confirm_migration()
    first.shutdown()
    second = make_controller()
    assert second.migration_pending is False


def test_style_transfer_and_apply_all(controller: ProjectController) -> None:
    for name in ("a.png", "b.png", "c.png"):
        controller.add_screenshot(name)
    controller.select_screenshot(0)
    controller.set_field("screenshot", "scale", 42)
    controller.store.set_text("headline", "First")
    assert controller.transfer_style(0, 1) is True
    assert controller.state.screenshots[1].transform["scale"] == 42
    assert controller.state.screenshots[1].text["headlines"]["en"] == ""
    assert controller.apply_style_to_all(0) == 2
    assert controller.state.screenshots[2].transform["scale"] == 42
    assert controller.transfer_style(1, 1) is False


def test_screenshot_list_operations(controller: ProjectController) -> None:
    controller.add_screenshot("a.png")
    controller.add_screenshot("b.png")
    copy = controller.duplicate_screenshot(0)
    assert [item.name for item in controller.state.screenshots] == ["a.png", "a.png (copy)", "b.png"]
    assert controller.move_screenshot(2, 0) is True
    assert controller.state.screenshots[0].name == "b.png"
    removed = controller.remove_screenshot(2)
    assert removed is copy
    assert controller.remove_screenshot(10) is None
    assert controller.select_screenshot(99) == 1


def test_translate_text_fills_other_languages(make_controller) -> None:
    controller = make_controller(languages=["en", "de", "fr"])
    controller.add_screenshot("a.png")
    controller.store.set_text("headline", "Hello")
    controller.store.set_text("subheadline", "World")
    translator = _Translator()
    assert controller.translate_text(translator) == 4
    text = controller.state.screenshots[0].text
    assert text["headlines"]["de"] == "de:Hello"
    assert text["subheadlines"]["fr"] == "fr:World"
    assert translator.calls == [("en", ["de", "fr"], ["Hello", "World"])]


def test_translate_text_errors_propagate(controller: ProjectController) -> None:
    controller.add_language("de")
    controller.add_screenshot("a.png")
    controller.store.set_text("headline", "Hello")

    class _Broken:
        def translate_batch(self, source_lang, target_langs, texts):
            raise ConnectionError("offline")

    with pytest.raises(TranslationError):
        controller.translate_text(_Broken())
    with pytest.raises(TranslationError):
        controller.translate_text(_Translator(drop="de"))
    assert controller.state.screenshots[0].text["headlines"]["de"] == ""


def test_renderer_invoked_on_change(make_controller) -> None:
    renderer = _Renderer()
    controller = make_controller(renderer=renderer)
    controller.add_screenshot("a.png")
    screenshot, language = renderer.calls[-1]
    assert screenshot is controller.state.screenshots[0]
    assert language == "en"


def test_renderer_failure_is_logged(make_controller, caplog) -> None:
    class _Broken:
        def render(self, screenshot, language):
            raise RuntimeError("gpu lost")

    controller = make_controller(renderer=_Broken())
    controller.add_screenshot("a.png")
    assert "Renderer failed" in caplog.text


def test_import_project_migrates_record(controller: ProjectController) -> None:
    info, result = controller.import_project(dict(LEGACY_RECORD), "Imported")
    assert result.migrated is True
    assert controller.active_project_id == info.id
    assert controller.state.screenshots[0].name == "intro.png"
    assert controller.repository.read_record(info.id)["schemaVersion"] == SCHEMA_VERSION


def test_unavailable_storage_reports_error(tmp_path: Path, manual_timers) -> None:
    from screenstudio.storage.repository import ProjectRepository

    repository = ProjectRepository(ProjectDatabase(tmp_path / "db.sqlite3", enabled=False))
    controller = ProjectController(repository, timer_factory=manual_timers.factory)
    errors: list[str] = []
    controller.error_occurred = errors.append
    controller.start()
    assert errors and "unavailable" in errors[0]
    controller.add_screenshot("a.png")
    manual_timers.fire_all()
    assert len(repository.read_record("default")["screenshots"]) == 1
    controller.shutdown()


def test_from_config_uses_settings(tmp_path: Path, default_config: dict) -> None:
    default_config["storage"]["db_path"] = str(tmp_path / "cfg.sqlite3")
    default_config["autosave"]["debounce_ms"] = 750
    default_config["history"]["max_entries"] = 5
    default_config["languages"]["default_project"] = ["de", "en"]
    controller = ProjectController.from_config(default_config)
    assert controller.scheduler.delay_ms == 750
    assert controller.history.max_history == 5
    controller.start()
    assert controller.state.project_languages == ["de", "en"]
    controller.shutdown()


def test_newer_record_is_never_overwritten(db_path: Path, make_controller, manual_timers) -> None:
    future = {"id": "next", "schemaVersion": SCHEMA_VERSION + 1, "screenshots": []}
    _seed(db_path, "next", future)
    controller = make_controller(start=False)
    errors: list[str] = []
    controller.error_occurred = errors.append
    controller.start()
    assert controller.read_only is True
    assert any("newer version" in message for message in errors)

    controller.add_screenshot("a.png")
    manual_timers.fire_all()
    assert controller.save_now() is False
    assert controller.repository.read_record("next") == future
    with pytest.raises(ProjectOperationError):
        controller.import_project(future, "Copy")


def test_damaged_record_opens_without_overwriting(db_path: Path, make_controller, manual_timers) -> None:
    damaged = {"id": "bad", "schemaVersion": SCHEMA_VERSION, "screenshots": 5}
    _seed(db_path, "bad", damaged)
    controller = make_controller(start=False)
    errors: list[str] = []
    controller.error_occurred = errors.append
    controller.start()
    assert controller.read_only is True
    assert any("is damaged" in message for message in errors)

    controller.add_screenshot("a.png")
    manual_timers.fire_all()
    assert controller.repository.read_record("bad") == damaged
    with pytest.raises(ProjectOperationError, match="is damaged"):
        controller.import_project(damaged, "Copy")


def test_timer_thread_save_waits_for_running_edit(controller: ProjectController, manual_timers, save_calls) -> None:
    controller.add_screenshot("a.png")
    timer = manual_timers.active[-1]
    worker = threading.Thread(target=timer.fire)
    with controller.lock:
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        assert save_calls == []
        controller.set_field("screenshot", "scale", 42)
    worker.join(timeout=5)
    assert not worker.is_alive()
    assert controller.repository.read_record("default")["screenshots"][0]["screenshot"]["scale"] == 42


def test_timer_thread_save_never_crosses_into_switched_project(
    controller: ProjectController, manual_timers
) -> None:
    second = controller.create_project("Second")
    controller.switch_project("default")
    controller.add_screenshot("a.png")
    timer = manual_timers.active[-1]
    worker = threading.Thread(target=timer.fire)
    with controller.lock:
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        controller.switch_project(second.id)
    worker.join(timeout=5)
    assert not worker.is_alive()

    assert controller.repository.read_record(second.id)["screenshots"] == []
    assert len(controller.repository.read_record("default")["screenshots"]) == 1


def test_shutdown_writes_unsaved_edits(make_controller, manual_timers) -> None:
    first = make_controller()
    first.add_screenshot("a.png")
    first.shutdown()
    assert manual_timers.active == []

    second = make_controller()
    assert len(second.state.screenshots) == 1


def test_incomplete_translation_writes_no_language(make_controller) -> None:
    controller = make_controller(languages=["en", "de", "fr"])
    controller.add_screenshot("a.png")
    controller.store.set_text("headline", "Hello")

    with pytest.raises(TranslationError, match="fr"):
        controller.translate_text(_Translator(drop="fr"))
    headlines = controller.state.screenshots[0].text["headlines"]
    assert headlines["de"] == ""
    assert headlines["fr"] == ""
