# -*- coding: utf-8 -*-
"""Schema migration of persisted project records.

Records carry an explicit ``schemaVersion``. A record without one is
version 0, the flat legacy shape:

* v0: settings live at the top level (``background``/``screenshot``/
  ``text``), screenshots may have no settings of their own.
* v1: a ``defaults`` tree and per-screenshot settings, but a single image
  per screenshot (``src``).
* v2: per-language images in ``localizedImages``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from copy import deepcopy
from typing import Any

from screenstudio.constants import DEFAULT_LANGUAGE, SCHEMA_VERSION
from screenstudio.core.localization import detect_language_from_filename
from screenstudio.models.settings import (
    LOCALIZED_TEXT_FIELDS,
    SETTINGS_KINDS,
    default_settings_tree,
    fill_missing,
    normalize_text,
)

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class MigrationError(ValueError):
    """Raised when a record is from a newer, unknown schema."""


def detect_schema_version(record: Record) -> int:
    try:
        return int(record.get("schemaVersion", 0) or 0)
    except (TypeError, ValueError):
        return 0


def needs_migration(record: Record) -> bool:
    return detect_schema_version(record) < SCHEMA_VERSION


def _record_languages(record: Record, fallback: str) -> list[str]:
    languages = [lang for lang in record.get("projectLanguages") or [] if isinstance(lang, str) and lang]
    return languages or [record.get("currentLanguage") or fallback]


def _upgrade_legacy_text(text: dict[str, Any], language: str) -> dict[str, Any]:
    """Turn single ``headline``/``subheadline`` strings into per-language maps."""
    for field in LOCALIZED_TEXT_FIELDS:
        single = text.pop(field, None)
        if isinstance(single, str) and not isinstance(text.get(f"{field}s"), dict):
            text[f"{field}s"] = {language: single}
    return text


def _migrate_v0_to_v1(record: Record, fallback: str) -> Record:
    languages = _record_languages(record, fallback)
    schema_defaults = default_settings_tree(languages)
    existing = record.get("defaults") if isinstance(record.get("defaults"), dict) else {}

    migrated_defaults: dict[str, Any] = {}
    for kind in SETTINGS_KINDS:
        legacy = record.pop(kind, None)
        source = existing.get(kind) if isinstance(existing.get(kind), dict) else legacy
        if isinstance(source, dict) and kind == "text":
            source = _upgrade_legacy_text(deepcopy(source), languages[0])
        migrated_defaults[kind] = fill_missing(source, schema_defaults[kind]) if isinstance(source, dict) else schema_defaults[kind]
    normalize_text(migrated_defaults["text"])
    record["defaults"] = migrated_defaults

    for screenshot in record.get("screenshots") or []:
        if not isinstance(screenshot, dict):
            continue
        for kind in SETTINGS_KINDS:
            value = screenshot.get(kind)
            if not isinstance(value, dict):
                screenshot[kind] = deepcopy(migrated_defaults[kind])
            elif kind == "text":
                normalize_text(_upgrade_legacy_text(value, languages[0]))
        screenshot.setdefault("overrides", {})
    record["projectLanguages"] = languages
    record.setdefault("currentLanguage", languages[0])
    return record


def _migrate_v1_to_v2(record: Record, fallback: str) -> Record:
    languages = _record_languages(record, fallback)
    current = record.get("currentLanguage") or languages[0]
    for screenshot in record.get("screenshots") or []:
        if not isinstance(screenshot, dict):
            continue
        localized = screenshot.get("localizedImages")
        if isinstance(localized, dict) and localized:
            continue
        screenshot["localizedImages"] = {}
        src = screenshot.get("src")
        if not src:
            continue
        name = screenshot.get("name") or ""
        language = detect_language_from_filename(name, current)
        if language not in languages:
            language = current
        screenshot["localizedImages"][language] = {"src": src, "name": name}
    return record


MIGRATIONS: dict[int, Callable[[Record, str], Record]] = {
    0: _migrate_v0_to_v1,
    1: _migrate_v1_to_v2,
}


def migrate_record(record: Record, fallback_language: str = DEFAULT_LANGUAGE) -> tuple[Record, bool]:
    """Return an upgraded copy of ``record`` and whether anything was migrated.

    The input is never modified.
    """
    version = detect_schema_version(record)
    if version > SCHEMA_VERSION:
        raise MigrationError(f"Record schema {version} is newer than supported {SCHEMA_VERSION}")
    if version == SCHEMA_VERSION:
        return record, False

    upgraded = deepcopy(record)
    while version < SCHEMA_VERSION:
        upgraded = MIGRATIONS[version](upgraded, fallback_language)
        version += 1
        upgraded["schemaVersion"] = version
    logger.info(
        "Migrated project record %s from schema %d to %d",
        record.get("id", "?"),
        detect_schema_version(record),
        SCHEMA_VERSION,
    )
    return upgraded, True
