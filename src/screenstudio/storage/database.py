# -*- coding: utf-8 -*-
"""Embedded transactional key-value store for project records."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

from screenstudio.utils.file_utils import ensure_dir

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS projects (id TEXT PRIMARY KEY, data TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT NOT NULL)",
)


class StorageUnavailableError(RuntimeError):
    """Raised internally when the database cannot be opened."""


class ProjectDatabase:
    """One row per project plus a small metadata table, in SQLite.

    If the database cannot be opened the store keeps working from memory
    only: reads and writes succeed for the session, nothing is durable.
    """

    def __init__(self, path: str | Path | None = MEMORY_PATH, enabled: bool = True) -> None:
        self.path = str(path) if path is not None else MEMORY_PATH
        self.enabled = enabled
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._memory: dict[str, dict[str, str]] = {"projects": {}, "meta": {}}
        self._opened = False

    @property
    def available(self) -> bool:
        """True when writes reach the durable store."""
        return self._conn is not None

    def open(self) -> bool:
        with self._lock:
            if self._opened:
                return self.available
            self._opened = True
            try:
                self._conn = self._connect()
            except StorageUnavailableError as exc:
                logger.warning("Project store unavailable, continuing in memory only: %s", exc)
                self._conn = None
            return self.available

    def _connect(self) -> sqlite3.Connection:
        if not self.enabled:
            raise StorageUnavailableError("storage disabled in settings")
        try:
            if self.path != MEMORY_PATH:
                ensure_dir(Path(self.path).parent)
            conn = sqlite3.connect(self.path, check_same_thread=False)
            with conn:
                for statement in _SCHEMA:
                    conn.execute(statement)
            return conn
        except (sqlite3.Error, OSError) as exc:
            raise StorageUnavailableError(str(exc)) from exc

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> ProjectDatabase:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Reads

    def get_project(self, project_id: str) -> dict[str, Any] | None:
        raw = self._read("projects", "id", "data", project_id)
        return json.loads(raw) if raw is not None else None

    def get_meta(self, key: str, default: Any = None) -> Any:
        raw = self._read("meta", "key", "value", key)
        return json.loads(raw) if raw is not None else default

    def project_ids(self) -> list[str]:
        self.open()
        with self._lock:
            if self._conn is None:
                return list(self._memory["projects"])
            try:
                return [row[0] for row in self._conn.execute("SELECT id FROM projects ORDER BY id")]
            except sqlite3.Error:
                logger.exception("Listing project records failed")
                return []

    def _read(self, table: str, key_column: str, value_column: str, key: str) -> str | None:
        self.open()
        with self._lock:
            if self._conn is None:
                return self._memory[table].get(key)
            try:
                row = self._conn.execute(
                    f"SELECT {value_column} FROM {table} WHERE {key_column} = ?", (key,)
                ).fetchone()
            except sqlite3.Error:
                logger.exception("Reading %s[%s] failed", table, key)
                return None
            return row[0] if row else None

    # Writes

    def put_project(self, project_id: str, record: dict[str, Any], meta: dict[str, Any] | None = None) -> bool:
        """Write one project record and optional metadata in a single transaction."""
        try:
            writes = [("projects", project_id, json.dumps(record))]
            writes += [("meta", key, json.dumps(value)) for key, value in (meta or {}).items()]
        except (TypeError, ValueError):
            logger.exception("Project %s is not serializable; nothing written", project_id)
            return False
        return self._write(writes, deletes=[])

    def put_meta(self, key: str, value: Any) -> bool:
        return self._write([("meta", key, json.dumps(value))], deletes=[])

    def delete_project(self, project_id: str, meta: dict[str, Any] | None = None) -> bool:
        writes = [("meta", key, json.dumps(value)) for key, value in (meta or {}).items()]
        return self._write(writes, deletes=[("projects", project_id)])

    def _write(self, writes: list[tuple[str, str, str]], deletes: list[tuple[str, str]]) -> bool:
        self.open()
        with self._lock:
            if self._conn is None:
                for table, key, payload in writes:
                    self._memory[table][key] = payload
                for table, key in deletes:
                    self._memory[table].pop(key, None)
                return True
            try:
                with self._conn:
                    for table, key, payload in writes:
                        key_column, value_column = ("id", "data") if table == "projects" else ("key", "value")
                        self._conn.execute(
                            f"INSERT OR REPLACE INTO {table} ({key_column}, {value_column}) VALUES (?, ?)",
                            (key, payload),
                        )
                    for table, key in deletes:
                        key_column = "id" if table == "projects" else "key"
                        self._conn.execute(f"DELETE FROM {table} WHERE {key_column} = ?", (key,))
            except sqlite3.Error:
                logger.exception("Store write failed; previous records are unchanged")
                return False
            return True
