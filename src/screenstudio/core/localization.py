# -*- coding: utf-8 -*-
"""Localized images and texts: lookup, fallback and language management."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from screenstudio.constants import DEFAULT_LANGUAGE, LANGUAGE_NAMES
from screenstudio.models.image import ImageHandle, LocalizedImage
from screenstudio.models.settings import LOCALIZED_TEXT_FIELDS

if TYPE_CHECKING:
    from screenstudio.models.project import ProjectState
    from screenstudio.models.screenshot import Screenshot

logger = logging.getLogger(__name__)

_LANGUAGE_SUFFIX_RE = re.compile(r"[_-]([a-z]{2})(?:-([a-z]{2}))?$", re.IGNORECASE)


def _is_known_language(code: str) -> bool:
    return code in LANGUAGE_NAMES or code.split("-", 1)[0] in LANGUAGE_NAMES


def _match_language_suffix(stem: str) -> tuple[str, int] | None:
    """Return (language code, start offset of the suffix) for a filename stem."""
    for match in _LANGUAGE_SUFFIX_RE.finditer(stem):
        base, region = match.group(1).lower(), match.group(2)
        if region:
            code = f"{base}-{region.lower()}"
            if _is_known_language(code):
                return code, match.start()
        if match.end(1) == len(stem) and _is_known_language(base):
            return base, match.start()
    # "x_zz-de": the region form was rejected, the trailing "-de" still counts
    tail = re.search(r"[_-]([a-z]{2})$", stem, re.IGNORECASE)
    if tail and _is_known_language(tail.group(1).lower()):
        return tail.group(1).lower(), tail.start()
    return None


def detect_language_from_filename(filename: str | None, fallback: str = DEFAULT_LANGUAGE) -> str:
    """Infer a language from a ``_xx``, ``-xx`` or ``_xx-yy`` filename suffix."""
    if not filename:
        return fallback
    found = _match_language_suffix(Path(filename).stem)
    return found[0] if found else fallback


def get_base_filename(filename: str | None) -> str:
    """Strip the extension and any language suffix from a filename."""
    if not filename:
        return ""
    stem = Path(filename).stem
    found = _match_language_suffix(stem)
    return stem[: found[1]] if found else stem


# Images


def resolve_image(screenshot: Screenshot | None, lang: str) -> ImageHandle | None:
    """Image to display for ``lang``: localized entry, then legacy image, then None."""
    if screenshot is None:
        return None
    entry = screenshot.localized_images.get(lang)
    if entry is not None and entry.image is not None:
        return entry.image
    return screenshot.image


def resolve_completeness(screenshot: Screenshot | None, project_languages: list[str]) -> bool:
    """True when every project language has a localized image."""
    if screenshot is None:
        return False
    available = set(screenshot.languages())
    return all(lang in available for lang in project_languages)


def available_languages(screenshot: Screenshot | None) -> list[str]:
    return screenshot.languages() if screenshot is not None else []


def sync_legacy_image(screenshot: Screenshot, current_language: str) -> None:
    """Mirror the current-language entry into the legacy single-image fields."""
    entry = screenshot.localized_images.get(current_language)
    if entry is not None and entry.image is not None:
        screenshot.image = entry.image
        screenshot.src = entry.src


def add_localized_image(
    screenshot: Screenshot,
    lang: str,
    image: ImageHandle | None,
    src: str,
    name: str,
    current_language: str,
) -> LocalizedImage:
    entry = LocalizedImage(image=image, src=src, name=name)
    screenshot.localized_images[lang] = entry
    if lang == current_language or screenshot.image is None:
        screenshot.image = image
        screenshot.src = src
    return entry


def remove_localized_image(screenshot: Screenshot, lang: str, current_language: str) -> bool:
    entry = screenshot.localized_images.pop(lang, None)
    if entry is None:
        return False
    if screenshot.image is entry.image:
        screenshot.image = None
        screenshot.src = ""
        remaining = screenshot.localized_images.get(current_language) or next(
            iter(screenshot.localized_images.values()), None
        )
        if remaining is not None:
            screenshot.image = remaining.image
            screenshot.src = remaining.src
    return True


def find_screenshot_by_base_filename(screenshots: list[Screenshot], filename: str) -> int:
    """Index of the screenshot sharing ``filename``'s base name, or -1."""
    base = get_base_filename(filename)
    if not base:
        return -1
    for index, screenshot in enumerate(screenshots):
        names = [screenshot.name] + [entry.name for entry in screenshot.localized_images.values()]
        if any(get_base_filename(name) == base for name in names if name):
            return index
    return -1


# Texts


def _field_keys(field: str) -> tuple[str, str, str]:
    if field not in LOCALIZED_TEXT_FIELDS:
        raise ValueError(f"Unknown text field: {field}")
    return f"{field}s", f"{field}Languages", f"current{field[0].upper()}{field[1:]}Lang"


def resolve_text(text: dict[str, Any], field: str, lang: str, fallback: str = DEFAULT_LANGUAGE) -> str:
    """Localized headline/subheadline with fallback to ``fallback`` then any non-empty entry."""
    values_key, _, _ = _field_keys(field)
    values = text.get(values_key) or {}
    for candidate in (lang, fallback):
        if values.get(candidate):
            return values[candidate]
    return next((value for value in values.values() if value), "")


def _add_text_language(text: dict[str, Any], lang: str) -> None:
    for field in LOCALIZED_TEXT_FIELDS:
        values_key, langs_key, _ = _field_keys(field)
        langs = text.setdefault(langs_key, [])
        if lang not in langs:
            langs.append(lang)
        text.setdefault(values_key, {}).setdefault(lang, "")


def _remove_text_language(text: dict[str, Any], lang: str) -> None:
    for field in LOCALIZED_TEXT_FIELDS:
        values_key, langs_key, current_key = _field_keys(field)
        langs = [item for item in text.get(langs_key, []) if item != lang]
        text.get(values_key, {}).pop(lang, None)
        text[langs_key] = langs
        if text.get(current_key) == lang:
            text[current_key] = langs[0] if langs else None


def normalize_language_code(lang: str | None) -> str:
    return (lang or "").strip().lower()


def add_language(state: ProjectState, lang: str) -> bool:
    """Add ``lang`` to the project and seed empty texts everywhere."""
    lang = normalize_language_code(lang)
    if not lang or lang in state.project_languages:
        return False
    state.project_languages.append(lang)
    _add_text_language(state.defaults["text"], lang)
    for screenshot in state.screenshots:
        _add_text_language(screenshot.text, lang)
    logger.info("Added project language %s", lang)
    return True


def remove_language(state: ProjectState, lang: str) -> bool:
    """Remove ``lang``; rejected when it is absent or the last language."""
    lang = normalize_language_code(lang)
    if lang not in state.project_languages or len(state.project_languages) <= 1:
        return False
    state.project_languages.remove(lang)
    if state.current_language == lang:
        state.current_language = state.project_languages[0]
    _remove_text_language(state.defaults["text"], lang)
    for screenshot in state.screenshots:
        _remove_text_language(screenshot.text, lang)
        remove_localized_image(screenshot, lang, state.current_language)
        sync_legacy_image(screenshot, state.current_language)
    for text in [state.defaults["text"]] + [item.text for item in state.screenshots]:
        for field in LOCALIZED_TEXT_FIELDS:
            values_key, langs_key, current_key = _field_keys(field)
            if not text[langs_key]:
                text[langs_key] = [state.current_language]
                text[values_key].setdefault(state.current_language, "")
            if text.get(current_key) is None:
                text[current_key] = text[langs_key][0]
    logger.info("Removed project language %s", lang)
    return True


# Upload routing


class UploadAction(str, Enum):
    NEW_SCREENSHOT = "new_screenshot"
    ADD_VARIANT = "add_variant"
    CONFLICT = "conflict"


class ConflictChoice(str, Enum):
    REPLACE = "replace"
    CREATE_NEW = "create_new"
    IGNORE = "ignore"


@dataclass
class UploadPlan:
    """Where one uploaded file goes."""

    filename: str
    language: str
    base_name: str
    action: UploadAction
    target_index: int = -1


def plan_upload(state: ProjectState, filename: str, fallback: str = DEFAULT_LANGUAGE) -> UploadPlan:
    """Route an upload to a new screenshot or a language variant of an existing one."""
    language = detect_language_from_filename(filename, fallback)
    base_name = get_base_filename(filename)
    index = find_screenshot_by_base_filename(state.screenshots, filename)
    if index < 0:
        return UploadPlan(filename, language, base_name, UploadAction.NEW_SCREENSHOT)
    if language in state.screenshots[index].localized_images:
        return UploadPlan(filename, language, base_name, UploadAction.CONFLICT, index)
    return UploadPlan(filename, language, base_name, UploadAction.ADD_VARIANT, index)
