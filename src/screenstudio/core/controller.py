# -*- coding: utf-8 -*-
"""Project controller: owns the state store and wires history, autosave and storage."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from screenstudio.constants import (
    DEFAULT_LANGUAGE,
    DEFAULT_PROJECT_ID,
    DEFAULT_PROJECT_NAME,
    MAX_HISTORY,
    SAVE_DEBOUNCE_MS,
)
from screenstudio.core import localization, style
from screenstudio.core.history import HistoryEngine
from screenstudio.core.localization import ConflictChoice, UploadAction, UploadPlan
from screenstudio.core.scheduler import SaveScheduler, TimerFactory
from screenstudio.core.state import CHANGE_LANGUAGE, CHANGE_STRUCTURE, StateStore, synchronized
from screenstudio.integrations.renderer import Renderer
from screenstudio.integrations.translator import TranslationError, Translator
from screenstudio.models.image import ImageHandle
from screenstudio.models.project import ProjectInfo, ProjectState
from screenstudio.models.screenshot import Screenshot
from screenstudio.models.settings import LOCALIZED_TEXT_FIELDS, normalize_text
from screenstudio.storage.database import ProjectDatabase
from screenstudio.storage.repository import LoadResult, ProjectRepository
from screenstudio.utils.image_utils import (
    ImageDecodeError,
    ImageValidationError,
    decode_image_bytes,
    infer_device_type,
    to_data_url,
    validate_upload,
)

logger = logging.getLogger(__name__)

ConflictResolver = Callable[[UploadPlan], ConflictChoice]
MessageCallback = Callable[[str], None]
HistoryCallback = Callable[[bool, bool], None]


class ProjectOperationError(RuntimeError):
    """A structural operation was rejected; the message is meant for the user."""


@dataclass
class UploadReport:
    """What happened to each file of one upload batch."""

    created: list[str] = field(default_factory=list)
    variants: list[str] = field(default_factory=list)
    replaced: list[str] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)
    unresolved: list[UploadPlan] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.variants or self.replaced)


class ProjectController:
    """Single owner of the in-memory project state.

    Field edits arm the debounced autosave; structural project operations
    (create, rename, delete, switch) write to the store immediately.
    """

    def __init__(
        self,
        repository: ProjectRepository,
        renderer: Renderer | None = None,
        conflict_resolver: ConflictResolver | None = None,
        debounce_ms: int = SAVE_DEBOUNCE_MS,
        max_history: int = MAX_HISTORY,
        timer_factory: TimerFactory | None = None,
        fallback_language: str = DEFAULT_LANGUAGE,
        decoder: Callable[[bytes], ImageHandle] | None = None,
    ) -> None:
        self.repository = repository
        self.renderer = renderer
        self.conflict_resolver = conflict_resolver
        self.fallback_language = fallback_language
        self.decoder = decoder or decode_image_bytes

        self.lock = threading.RLock()
        self.store = StateStore(lock=self.lock)
        self.history = HistoryEngine(max_history=max_history)
        self.scheduler = SaveScheduler(self._persist_scheduled, delay_ms=debounce_ms, timer_factory=timer_factory)

        self.projects: list[ProjectInfo] = []
        self.active_project_id: str | None = None
        self.migration_pending = False
        self.read_only = False
        self._dirty = False
        self._suspend_autosave = False

        self.state_changed: Callable[[str], None] | None = None
        self.history_changed: HistoryCallback | None = None
        self.migration_required: MessageCallback | None = None
        self.error_occurred: MessageCallback | None = None

        self.store.subscribe(self._on_state_changed)

    @classmethod
    def from_config(cls, config: dict[str, Any], **kwargs: Any) -> ProjectController:
        """Build database, repository and controller from app settings."""
        storage = config.get("storage", {})
        languages = config.get("languages", {})
        fallback = str(languages.get("fallback") or DEFAULT_LANGUAGE)
        database = ProjectDatabase(storage.get("db_path"), enabled=bool(storage.get("enabled", True)))
        repository = ProjectRepository(
            database,
            fallback_language=fallback,
            default_languages=list(languages.get("default_project") or [fallback]),
        )
        kwargs.setdefault("debounce_ms", int(config.get("autosave", {}).get("debounce_ms", SAVE_DEBOUNCE_MS)))
        kwargs.setdefault("max_history", int(config.get("history", {}).get("max_entries", MAX_HISTORY)))
        kwargs.setdefault("fallback_language", fallback)
        return cls(repository, **kwargs)

    @property
    def state(self) -> ProjectState:
        return self.store.state

    def _project(self, project_id: str) -> ProjectInfo | None:
        return next((project for project in self.projects if project.id == project_id), None)

    # Lifecycle

    @synchronized
    def start(self) -> LoadResult:
        """Open the store and load the active project (creating a default one)."""
        if not self.repository.database.open():
            self._report_error("Project storage is unavailable; changes will not be kept after closing.")
        self.projects = self.repository.list_projects()
        if not self.projects:
            self.projects = [ProjectInfo(DEFAULT_PROJECT_ID, DEFAULT_PROJECT_NAME)]
            self.repository.save_project_list(self.projects)
        current = self.repository.current_project_id()
        if self._project(current or "") is None:
            current = self.projects[0].id
        return self._activate(current)

    def shutdown(self) -> None:
        with self.lock:
            self._flush_active()
            self.scheduler.cancel_all()
        self.repository.loader.shutdown(wait_for_tasks=False)
        self.repository.database.close()

    @synchronized
    def _activate(self, project_id: str) -> LoadResult:
        result = self.repository.load(project_id)
        self._replace_state(result.state, persist=False)
        self._dirty = False
        self.active_project_id = project_id
        self.migration_pending = result.migrated
        self.read_only = result.read_only
        self.repository.set_current_project_id(project_id)
        self.history.initialize(self.state)
        self._emit_history()
        if result.created:
            self._write_active()
        if result.migrated:
            logger.info("Project %s was migrated; waiting for confirmation before overwriting", project_id)
            if self.migration_required is not None:
                self.migration_required(project_id)
        if result.read_only:
            self._report_error(f"Project {project_id} {result.problem}; changes will not be saved.")
        for failure in result.failures:
            self._report_error(f"Could not load image {failure.name or failure.language}: {failure.error}")
        return result

    def _replace_state(self, state: ProjectState, persist: bool) -> None:
        self._suspend_autosave = not persist
        try:
            self.store.replace(state)
        finally:
            self._suspend_autosave = False

    # Persistence

    def _on_state_changed(self, reason: str) -> None:
        if not self._suspend_autosave:
            self.schedule_save()
        self._render()
        if self.state_changed is not None:
            self.state_changed(reason)

    def schedule_save(self) -> None:
        if self.active_project_id is None or self.migration_pending or self.read_only:
            return
        self._dirty = True
        self.scheduler.schedule_save(self.active_project_id)

    @synchronized
    def _persist_scheduled(self, project_id: str) -> None:
        if project_id != self.active_project_id or self._project(project_id) is None:
            logger.debug("Dropping scheduled save for inactive project %s", project_id)
            return
        self._write_active()

    @synchronized
    def _write_active(self) -> bool:
        if self.active_project_id is None or self.migration_pending or self.read_only:
            return False
        project = self._project(self.active_project_id)
        ok = self.repository.save(self.active_project_id, self.state)
        if ok:
            self._dirty = False
            if project is not None:
                project.screenshot_count = len(self.state.screenshots)
        return ok

    @synchronized
    def save_now(self) -> bool:
        """Write the active project immediately, replacing any pending autosave."""
        if self.active_project_id is not None:
            self.scheduler.cancel(self.active_project_id)
        return self._write_active()

    @synchronized
    def confirm_migration(self) -> bool:
        """Overwrite the legacy on-disk record with the migrated state."""
        if not self.migration_pending:
            return False
        self.migration_pending = False
        return self.save_now()

    def decline_migration(self) -> None:
        logger.info("Migration of project %s declined; record left untouched", self.active_project_id)

    # Projects

    @synchronized
    def create_project(self, name: str) -> ProjectInfo:
        name = (name or "").strip()
        if not name:
            raise ProjectOperationError("Project name cannot be empty.")
        self._flush_active()
        info = ProjectInfo(id=uuid4().hex[:12], name=name)
        self.projects.append(info)
        self.repository.save_project_list(self.projects)
        self.repository.save(info.id, ProjectState.empty(self.repository.default_languages))
        self.repository.loader.cancel_all()
        self._activate(info.id)
        logger.info("Created project %s (%s)", info.name, info.id)
        return info

    @synchronized
    def rename_project(self, project_id: str, name: str) -> ProjectInfo:
        project = self._project(project_id)
        if project is None:
            raise ProjectOperationError(f"Unknown project: {project_id}")
        name = (name or "").strip()
        if not name:
            raise ProjectOperationError("Project name cannot be empty.")
        project.name = name
        self.repository.save_project_list(self.projects)
        return project

    @synchronized
    def delete_project(self, project_id: str) -> None:
        if self._project(project_id) is None:
            raise ProjectOperationError(f"Unknown project: {project_id}")
        if len(self.projects) <= 1:
            raise ProjectOperationError("Cannot delete the only project.")
        self.scheduler.cancel(project_id)
        remaining = [project for project in self.projects if project.id != project_id]
        deleting_active = project_id == self.active_project_id
        next_id = remaining[0].id if deleting_active else str(self.active_project_id)
        if not self.repository.delete(project_id, remaining, next_id):
            raise ProjectOperationError("The project could not be deleted, please try again.")
        self.projects = remaining
        logger.info("Deleted project %s", project_id)
        if deleting_active:
            self.active_project_id = None
            self.repository.loader.cancel_all()
            self._activate(next_id)

    @synchronized
    def import_project(self, record: dict[str, Any], name: str) -> tuple[ProjectInfo, LoadResult]:
        """Create a new project from an exported or legacy record and write it upgraded."""
        result = self.repository.load_record(record)
        if result.read_only:
            raise ProjectOperationError(f"This project {result.problem} and cannot be imported.")
        info = self.create_project(name)
        self._replace_state(result.state, persist=False)
        self.history.initialize(self.state)
        self._emit_history()
        self._write_active()
        return info, result

    @synchronized
    def switch_project(self, project_id: str) -> LoadResult:
        if self._project(project_id) is None:
            raise ProjectOperationError(f"Unknown project: {project_id}")
        if project_id == self.active_project_id:
            return LoadResult(state=self.state)
        self._flush_active()
        self.repository.loader.cancel_all()
        return self._activate(project_id)

    def _flush_active(self) -> None:
        if self.active_project_id is None:
            return
        self.scheduler.cancel(self.active_project_id)
        if self._dirty:
            self._write_active()

    # History

    @synchronized
    def checkpoint(self, action: str) -> bool:
        """Snapshot the current state after a discrete user action."""
        recorded = self.history.record(self.state, action)
        if recorded:
            self._emit_history()
        return recorded

    @synchronized
    def undo(self) -> bool:
        state = self.history.undo()
        if state is None:
            return False
        self._replace_state(state, persist=True)
        self._emit_history()
        return True

    @synchronized
    def redo(self) -> bool:
        state = self.history.redo()
        if state is None:
            return False
        self._replace_state(state, persist=True)
        self._emit_history()
        return True

    def history_info(self) -> dict[str, Any]:
        return self.history.info()

    def _emit_history(self) -> None:
        if self.history_changed is not None:
            self.history_changed(self.history.can_undo(), self.history.can_redo())

    # Editing

    @synchronized
    def set_field(self, kind: str, path: str, value: Any) -> bool:
        return self.store.set_field(kind, path, value)

    @synchronized
    def select_screenshot(self, index: int) -> int:
        return self.store.select(index)

    @synchronized
    def set_current_language(self, lang: str) -> bool:
        return self.store.set_current_language(lang)

    @synchronized
    def add_screenshot(self, name: str = "") -> Screenshot:
        screenshot = self.store.add_screenshot(name)
        self.checkpoint("Add screenshot")
        return screenshot

    @synchronized
    def remove_screenshot(self, index: int) -> Screenshot | None:
        removed = self.store.remove_screenshot(index)
        if removed is not None:
            self.repository.loader.cancel(removed.uid)
            self.checkpoint("Delete screenshot")
        return removed

    @synchronized
    def duplicate_screenshot(self, index: int) -> Screenshot | None:
        copy = self.store.duplicate_screenshot(index)
        if copy is not None:
            self.checkpoint("Duplicate screenshot")
        return copy

    @synchronized
    def move_screenshot(self, source: int, target: int) -> bool:
        moved = self.store.move_screenshot(source, target)
        if moved:
            self.checkpoint("Reorder screenshots")
        return moved

    # Languages

    @synchronized
    def add_language(self, lang: str) -> bool:
        added = localization.add_language(self.state, lang)
        if added:
            self.store.touch(CHANGE_LANGUAGE)
            self.checkpoint(f"Add language {lang}")
        return added

    @synchronized
    def remove_language(self, lang: str) -> bool:
        removed = localization.remove_language(self.state, lang)
        if not removed:
            if len(self.state.project_languages) <= 1:
                self._report_error("A project needs at least one language.")
            return False
        self.store.touch(CHANGE_LANGUAGE)
        self.checkpoint(f"Remove language {lang}")
        return True

    # Style propagation

    @synchronized
    def transfer_style(self, source_index: int, target_index: int) -> bool:
        if not style.transfer_style(self.state, source_index, target_index):
            return False
        self.store.touch()
        self.checkpoint("Copy style")
        return True

    @synchronized
    def apply_style_to_all(self, source_index: int) -> int:
        applied = style.apply_style_to_all(self.state, source_index)
        if applied:
            self.store.touch()
            self.checkpoint("Apply style to all")
        return applied

    # Uploads

    @synchronized
    def upload_files(
        self,
        files: list[tuple[str, bytes]],
        conflict_resolver: ConflictResolver | None = None,
    ) -> UploadReport:
        """Validate, decode and route uploaded files; one bad file never stops the rest."""
        resolver = conflict_resolver or self.conflict_resolver
        report = UploadReport()
        for filename, data in files:
            try:
                mime_type = validate_upload(filename, data)
                image = self.decoder(data)
            except (ImageValidationError, ImageDecodeError) as exc:
                report.errors[filename] = str(exc)
                self._report_error(f"{filename}: {exc}")
                continue
            plan = localization.plan_upload(self.state, filename, self.fallback_language)
            self._apply_upload(plan, image, to_data_url(data, mime_type), resolver, report)

        if report.changed:
            self.store.touch(CHANGE_STRUCTURE)
            self.checkpoint("Upload screenshots")
        return report

    def _apply_upload(
        self,
        plan: UploadPlan,
        image: ImageHandle,
        src: str,
        resolver: ConflictResolver | None,
        report: UploadReport,
    ) -> None:
        state = self.state
        action = plan.action
        if action == UploadAction.CONFLICT:
            if resolver is None:
                report.unresolved.append(plan)
                return
            choice = ConflictChoice(resolver(plan))
            if choice == ConflictChoice.IGNORE:
                report.ignored.append(plan.filename)
                return
            action = UploadAction.NEW_SCREENSHOT if choice == ConflictChoice.CREATE_NEW else UploadAction.ADD_VARIANT
            if choice == ConflictChoice.REPLACE:
                report.replaced.append(plan.filename)

        if plan.language not in state.project_languages:
            localization.add_language(state, plan.language)

        if action == UploadAction.NEW_SCREENSHOT:
            screenshot = Screenshot.from_defaults(state.defaults, name=plan.filename)
            screenshot.device_type = infer_device_type(image.width, image.height)
            localization.add_localized_image(screenshot, plan.language, image, src, plan.filename, state.current_language)
            state.screenshots.append(screenshot)
            state.selected_index = len(state.screenshots) - 1
            report.created.append(plan.filename)
            return

        target = state.screenshots[plan.target_index]
        localization.add_localized_image(target, plan.language, image, src, plan.filename, state.current_language)
        if plan.action != UploadAction.CONFLICT:
            report.variants.append(plan.filename)

    # Translation

    @synchronized
    def translate_text(self, translator: Translator, source_lang: str | None = None) -> int:
        """Fill every other project language from ``source_lang`` texts.

        Provider failures propagate as TranslationError.
        """
        state = self.state
        source = source_lang or state.current_language
        targets = [lang for lang in state.project_languages if lang != source]
        slots: list[tuple[dict[str, Any], str]] = []
        texts: list[str] = []
        for screenshot in state.screenshots:
            for text_field in LOCALIZED_TEXT_FIELDS:
                value = (screenshot.text.get(f"{text_field}s") or {}).get(source)
                if value:
                    slots.append((screenshot.text, text_field))
                    texts.append(value)
        if not targets or not texts:
            return 0

        try:
            translated = translator.translate_batch(source, targets, texts)
        except TranslationError:
            raise
        except Exception as exc:
            raise TranslationError(f"Translation failed: {exc}") from exc

        for lang in targets:
            values = translated.get(lang)
            if values is None or len(values) != len(texts):
                raise TranslationError(f"Translation for {lang} is incomplete")

        written = 0
        for lang in targets:
            for (text, text_field), value in zip(slots, translated[lang]):
                text.setdefault(f"{text_field}s", {})[lang] = value
                normalize_text(text)
                written += 1
        self.store.touch()
        self.checkpoint("Translate text")
        return written

    # Collaborators

    def _render(self) -> None:
        if self.renderer is None:
            return
        try:
            self.renderer.render(self.store.current_screenshot(), self.state.current_language)
        except Exception:
            logger.exception("Renderer failed")

    def _report_error(self, message: str) -> None:
        logger.warning(message)
        if self.error_occurred is not None:
            self.error_occurred(message)
