# -*- coding: utf-8 -*-
"""Project identity and full project state models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from screenstudio.constants import DEFAULT_LANGUAGE, DEFAULT_OUTPUT_DEVICE
from screenstudio.models.screenshot import Screenshot
from screenstudio.models.settings import (
    SETTINGS_KINDS,
    default_settings_tree,
    fill_missing_kind,
    normalize_background,
    normalize_text,
)


@dataclass
class ProjectInfo:
    """Entry of the project list kept in the metadata record."""

    id: str
    name: str
    screenshot_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "screenshotCount": self.screenshot_count}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectInfo:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            screenshot_count=int(data.get("screenshotCount", 0) or 0),
        )


@dataclass
class ProjectState:
    """Everything persisted for one project."""

    screenshots: list[Screenshot] = field(default_factory=list)
    selected_index: int = 0
    output_device: str = DEFAULT_OUTPUT_DEVICE
    custom_width: int = 1290
    custom_height: int = 2796
    current_language: str = DEFAULT_LANGUAGE
    project_languages: list[str] = field(default_factory=lambda: [DEFAULT_LANGUAGE])
    defaults: dict[str, Any] = field(default_factory=default_settings_tree)

    @classmethod
    def empty(cls, languages: list[str] | None = None) -> ProjectState:
        langs = list(languages or [DEFAULT_LANGUAGE])
        return cls(
            current_language=langs[0],
            project_languages=langs,
            defaults=default_settings_tree(langs),
        )

    def clamp_selection(self) -> int:
        """Clamp ``selected_index`` into range and return it."""
        if not self.screenshots:
            self.selected_index = 0
        else:
            self.selected_index = min(max(int(self.selected_index), 0), len(self.screenshots) - 1)
        return self.selected_index

    def repair(self) -> list[str]:
        """Fix recoverable invariant violations in place; return what changed."""
        fixes: list[str] = []

        languages: list[str] = []
        for lang in self.project_languages or []:
            if isinstance(lang, str) and lang and lang not in languages:
                languages.append(lang)
        if not languages:
            languages = [self.current_language or DEFAULT_LANGUAGE]
            fixes.append("project_languages")
        if self.current_language not in languages:
            if self.current_language:
                languages.append(self.current_language)
            else:
                self.current_language = languages[0]
            fixes.append("current_language")
        self.project_languages = languages

        previous_index = self.selected_index
        if self.clamp_selection() != previous_index:
            fixes.append("selected_index")

        for kind in SETTINGS_KINDS:
            if not isinstance(self.defaults.get(kind), dict):
                fixes.append(f"defaults.{kind}")
            self.defaults[kind] = fill_missing_kind(kind, self.defaults.get(kind))
        normalize_background(self.defaults["background"])
        normalize_text(self.defaults["text"])
        for screenshot in self.screenshots:
            normalize_background(screenshot.background)
            normalize_text(screenshot.text)
        return fixes
