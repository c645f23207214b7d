# -*- coding: utf-8 -*-
"""Copy visual style between screenshots without touching their copy text."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any

from screenstudio.models.project import ProjectState
from screenstudio.models.screenshot import Screenshot
from screenstudio.models.settings import normalize_text

logger = logging.getLogger(__name__)

PRESERVED_TEXT_KEYS = ("headlines", "subheadlines")


def _copy_background(background: dict[str, Any]) -> dict[str, Any]:
    copied = deepcopy({key: value for key, value in background.items() if key != "image"})
    copied["image"] = background.get("image")
    return copied


def _copy_text_style(source: dict[str, Any], target: dict[str, Any]) -> dict[str, Any]:
    copied = deepcopy({key: value for key, value in source.items() if key not in PRESERVED_TEXT_KEYS})
    for key in PRESERVED_TEXT_KEYS:
        copied[key] = target.get(key, {})
    return normalize_text(copied)


def _apply(source: Screenshot, target: Screenshot) -> None:
    target.background = _copy_background(source.background)
    target.transform = deepcopy(source.transform)
    target.text = _copy_text_style(source.text, target.text)


def transfer_style(state: ProjectState, source_index: int, target_index: int) -> bool:
    """Copy background, device transform and text style from one screenshot to another."""
    count = len(state.screenshots)
    if not (0 <= source_index < count and 0 <= target_index < count) or source_index == target_index:
        return False
    _apply(state.screenshots[source_index], state.screenshots[target_index])
    logger.info("Transferred style from screenshot %d to %d", source_index, target_index)
    return True


def apply_style_to_all(state: ProjectState, source_index: int) -> int:
    """Copy the style of one screenshot onto every other; return how many changed."""
    if not 0 <= source_index < len(state.screenshots):
        return 0
    source = state.screenshots[source_index]
    applied = 0
    for index, target in enumerate(state.screenshots):
        if index == source_index:
            continue
        _apply(source, target)
        applied += 1
    logger.info("Applied style of screenshot %d to %d others", source_index, applied)
    return applied
