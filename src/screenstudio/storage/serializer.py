# -*- coding: utf-8 -*-
"""Convert ProjectState to and from its persisted record shape."""

from __future__ import annotations

import logging
from copy import deepcopy
from pathlib import Path
from typing import Any

from screenstudio.constants import DEFAULT_LANGUAGE, DEFAULT_OUTPUT_DEVICE, SCHEMA_VERSION
from screenstudio.core.loader import Decoder, DecodeRequest
from screenstudio.models.project import ProjectState
from screenstudio.models.screenshot import Screenshot
from screenstudio.models.settings import SETTINGS_KINDS, fill_missing_kind
from screenstudio.utils.image_utils import decode_image_bytes, parse_data_url

logger = logging.getLogger(__name__)

PendingImages = dict[str, list[DecodeRequest]]


def _strip_background(background: dict[str, Any]) -> dict[str, Any]:
    stripped = deepcopy({key: value for key, value in background.items() if key != "image"})
    stripped["image"] = None
    return stripped


def _serialize_tree(tree: dict[str, Any]) -> dict[str, Any]:
    return {
        "background": _strip_background(tree["background"]),
        "screenshot": deepcopy(tree["screenshot"]),
        "text": deepcopy(tree["text"]),
    }


def serialize_screenshot(screenshot: Screenshot) -> dict[str, Any]:
    return {
        "src": screenshot.src,
        "name": screenshot.name,
        "deviceType": screenshot.device_type,
        "localizedImages": {
            lang: {"src": entry.src, "name": entry.name}
            for lang, entry in screenshot.localized_images.items()
        },
        "background": _strip_background(screenshot.background),
        "screenshot": deepcopy(screenshot.transform),
        "text": deepcopy(screenshot.text),
        "overrides": deepcopy(screenshot.overrides),
    }


def serialize_state(state: ProjectState, project_id: str) -> dict[str, Any]:
    """Build the durable record; image handles are reduced to their sources."""
    return {
        "id": project_id,
        "schemaVersion": SCHEMA_VERSION,
        "screenshots": [serialize_screenshot(item) for item in state.screenshots],
        "selectedIndex": state.clamp_selection(),
        "outputDevice": state.output_device,
        "customWidth": state.custom_width,
        "customHeight": state.custom_height,
        "currentLanguage": state.current_language,
        "projectLanguages": list(state.project_languages),
        "defaults": _serialize_tree(state.defaults),
    }


def source_bytes(src: str | None) -> bytes | None:
    """Raw bytes behind a data URL or a local file path, if still reachable."""
    if not src:
        return None
    parsed = parse_data_url(src)
    if parsed is not None:
        return parsed[1]
    try:
        path = Path(src)
        if path.is_file():
            return path.read_bytes()
    except (OSError, ValueError):
        pass
    return None


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric value %r, using %d", value, default)
        return default


def _restore_background_image(background: dict[str, Any], decoder: Decoder) -> None:
    background["image"] = None
    data = source_bytes(background.get("imageSrc"))
    if data is None:
        return
    try:
        background["image"] = decoder(data)
    except Exception as exc:
        logger.warning("Background image could not be restored: %s", exc)


def _deserialize_screenshot(
    data: dict[str, Any],
    defaults: dict[str, Any],
    current_language: str,
    decoder: Decoder,
) -> tuple[Screenshot, list[DecodeRequest]]:
    settings = {}
    for kind in SETTINGS_KINDS:
        value = data.get(kind)
        settings[kind] = fill_missing_kind(kind, value) if isinstance(value, dict) else deepcopy(defaults[kind])
    _restore_background_image(settings["background"], decoder)

    screenshot = Screenshot(
        name=str(data.get("name") or ""),
        background=settings["background"],
        transform=settings["screenshot"],
        text=settings["text"],
        device_type=str(data.get("deviceType") or "iphone"),
        src=str(data.get("src") or ""),
        overrides=deepcopy(_as_dict(data.get("overrides"))),
    )

    requests: list[DecodeRequest] = []
    localized = _as_dict(data.get("localizedImages"))
    for lang, entry in localized.items():
        if not isinstance(lang, str) or not isinstance(entry, dict):
            logger.warning("Skipping malformed localized image %r in %s", lang, screenshot.name or "screenshot")
            continue
        src = str(entry.get("src") or "")
        requests.append(DecodeRequest(lang, str(entry.get("name") or ""), src, source_bytes(src)))
    if not localized and screenshot.src:
        requests.append(DecodeRequest(current_language, screenshot.name, screenshot.src, source_bytes(screenshot.src)))
    return screenshot, requests


def deserialize_record(
    record: dict[str, Any],
    decoder: Decoder | None = None,
) -> tuple[ProjectState, PendingImages]:
    """Rebuild a ProjectState from a current-schema record.

    Localized images are returned as decode requests per screenshot uid so
    the caller can join them before exposing the screenshots.
    """
    decoder = decoder or decode_image_bytes
    raw_languages = record.get("projectLanguages")
    if not isinstance(raw_languages, list):
        raw_languages = []
    languages = [lang for lang in raw_languages if isinstance(lang, str) and lang]
    current_language = record.get("currentLanguage")
    if not isinstance(current_language, str) or not current_language:
        current_language = languages[0] if languages else DEFAULT_LANGUAGE

    raw_defaults = _as_dict(record.get("defaults"))
    defaults = {kind: fill_missing_kind(kind, _as_dict(raw_defaults.get(kind))) for kind in SETTINGS_KINDS}
    _restore_background_image(defaults["background"], decoder)

    state = ProjectState(
        selected_index=_as_int(record.get("selectedIndex"), 0),
        output_device=str(record.get("outputDevice") or DEFAULT_OUTPUT_DEVICE),
        custom_width=_as_int(record.get("customWidth"), 1290),
        custom_height=_as_int(record.get("customHeight"), 2796),
        current_language=current_language,
        project_languages=languages,
        defaults=defaults,
    )

    pending: PendingImages = {}
    for data in record.get("screenshots") or []:
        if not isinstance(data, dict):
            continue
        screenshot, requests = _deserialize_screenshot(data, defaults, current_language, decoder)
        state.screenshots.append(screenshot)
        pending[screenshot.uid] = requests

    fixes = state.repair()
    if fixes:
        logger.info("Repaired loaded record: %s", ", ".join(fixes))
    return state, pending
