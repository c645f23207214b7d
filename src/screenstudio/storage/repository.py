# -*- coding: utf-8 -*-
"""Project-level read/write protocol on top of ProjectDatabase."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from screenstudio.constants import DEFAULT_LANGUAGE, META_CURRENT_PROJECT_KEY, META_PROJECTS_KEY
from screenstudio.core.loader import DecodeOutcome, ImageBatchLoader
from screenstudio.models.project import ProjectInfo, ProjectState
from screenstudio.storage.database import ProjectDatabase
from screenstudio.storage.migration import MigrationError, migrate_record
from screenstudio.storage.serializer import deserialize_record, serialize_state

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Outcome of loading one project."""

    state: ProjectState
    migrated: bool = False
    created: bool = False
    read_only: bool = False
    problem: str = ""
    failures: list[DecodeOutcome] = field(default_factory=list)


class ProjectRepository:
    """Load, migrate and save project records plus the project list."""

    def __init__(
        self,
        database: ProjectDatabase,
        loader: ImageBatchLoader | None = None,
        fallback_language: str = DEFAULT_LANGUAGE,
        default_languages: list[str] | None = None,
    ) -> None:
        self.database = database
        self.loader = loader or ImageBatchLoader()
        self.fallback_language = fallback_language
        self.default_languages = list(default_languages or [fallback_language])

    # Metadata

    def list_projects(self) -> list[ProjectInfo]:
        raw = self.database.get_meta(META_PROJECTS_KEY, default=[]) or []
        projects: list[ProjectInfo] = []
        for item in raw:
            try:
                projects.append(ProjectInfo.from_dict(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed project list entry: %r", item)
        return projects

    def save_project_list(self, projects: list[ProjectInfo]) -> bool:
        return self.database.put_meta(META_PROJECTS_KEY, [project.to_dict() for project in projects])

    def current_project_id(self) -> str | None:
        value = self.database.get_meta(META_CURRENT_PROJECT_KEY)
        return str(value) if value else None

    def set_current_project_id(self, project_id: str) -> bool:
        return self.database.put_meta(META_CURRENT_PROJECT_KEY, project_id)

    # Records

    def read_record(self, project_id: str) -> dict[str, Any] | None:
        return self.database.get_project(project_id)

    def load(self, project_id: str) -> LoadResult:
        """Load a project, migrating legacy records in memory only."""
        try:
            record = self.database.get_project(project_id)
        except ValueError:
            logger.exception("Project record %s is not valid JSON", project_id)
            return self._unreadable("is damaged")
        if record is None:
            logger.info("No record for project %s, starting empty", project_id)
            return LoadResult(state=ProjectState.empty(self.default_languages), created=True)
        return self.load_record(record)

    def load_record(self, record: dict[str, Any]) -> LoadResult:
        """Migrate and rebuild one record.

        Unreadable records come back as an empty read-only state so the
        stored record is never overwritten.
        """
        if not isinstance(record, dict):
            logger.error("Project record is a %s, not an object", type(record).__name__)
            return self._unreadable("is damaged")
        try:
            upgraded, migrated = migrate_record(record, self.fallback_language)
            state, pending = deserialize_record(upgraded)
        except MigrationError:
            logger.exception("Cannot read project record %s", record.get("id", "?"))
            return self._unreadable("was saved by a newer version")
        except (AttributeError, KeyError, TypeError, ValueError):
            logger.exception("Project record %s is corrupt, opening it empty", record.get("id", "?"))
            return self._unreadable("is damaged")

        failures: list[DecodeOutcome] = []
        batches = [
            (screenshot, self.loader.submit(screenshot, pending.get(screenshot.uid, [])))
            for screenshot in state.screenshots
        ]
        for screenshot, batch in batches:
            failures.extend(self.loader.apply(screenshot, batch, state.current_language))
        return LoadResult(state=state, migrated=migrated, failures=failures)

    def _unreadable(self, problem: str) -> LoadResult:
        return LoadResult(state=ProjectState.empty(self.default_languages), read_only=True, problem=problem)

    def save(self, project_id: str, state: ProjectState) -> bool:
        """Write the record and refresh the cached screenshot count."""
        record = serialize_state(state, project_id)
        projects = self.list_projects()
        for project in projects:
            if project.id == project_id:
                project.screenshot_count = len(state.screenshots)
        ok = self.database.put_project(
            project_id,
            record,
            meta={META_PROJECTS_KEY: [project.to_dict() for project in projects]},
        )
        if ok:
            logger.debug("Saved project %s (%d screenshots)", project_id, len(state.screenshots))
        return ok

    def delete(self, project_id: str, remaining: list[ProjectInfo], current_id: str) -> bool:
        return self.database.delete_project(
            project_id,
            meta={
                META_PROJECTS_KEY: [project.to_dict() for project in remaining],
                META_CURRENT_PROJECT_KEY: current_id,
            },
        )
