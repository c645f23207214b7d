# -*- coding: utf-8 -*-
"""Project state container and typed setters."""

from __future__ import annotations

import functools
import logging
import math
import threading
from collections.abc import Callable
from copy import deepcopy
from typing import Any

from screenstudio.constants import CUSTOM_OUTPUT_DEVICE, OUTPUT_DEVICES
from screenstudio.core import localization
from screenstudio.models.project import ProjectState
from screenstudio.models.screenshot import KIND_ATTRIBUTES, Screenshot, new_uid
from screenstudio.models.settings import normalize_text

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], None]

CHANGE_FIELD = "field"
CHANGE_STRUCTURE = "structure"
CHANGE_SELECTION = "selection"
CHANGE_LANGUAGE = "language"
CHANGE_REPLACE = "replace"


def _split_path(path: str) -> list[str]:
    parts = [part for part in str(path).split(".") if part]
    if not parts:
        raise ValueError("Empty settings path")
    return parts


def _walk(root: dict[str, Any], parts: list[str], create: bool) -> dict[str, Any] | None:
    node: Any = root
    for part in parts:
        if not isinstance(node, dict):
            return None
        child = node.get(part)
        if child is None and create:
            child = {}
            node[part] = child
        node = child
    return node if isinstance(node, dict) else None


def synchronized(method):
    """Run a method while holding the owner's ``lock``."""

    @functools.wraps(method)
    def _wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)

    return _wrapper


class StateStore:
    """Own one ProjectState and expose mutation through typed setters.

    Every setter notifies subscribers with a change reason; the controller
    uses that to arm autosave and trigger a re-render. Setters run under
    ``lock``, which the controller shares with its save path.
    """

    def __init__(self, state: ProjectState | None = None, lock: Any = None) -> None:
        self.lock = lock or threading.RLock()
        self._state = state or ProjectState.empty()
        self._state.repair()
        self._listeners: list[ChangeListener] = []

    @property
    def state(self) -> ProjectState:
        return self._state

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, reason: str) -> None:
        for listener in list(self._listeners):
            listener(reason)

    @synchronized
    def replace(self, state: ProjectState, reason: str = CHANGE_REPLACE) -> None:
        """Swap in a whole new state (project switch, undo, redo)."""
        self._state = state
        fixes = state.repair()
        if fixes:
            logger.info("Repaired state on replace: %s", ", ".join(fixes))
        self._notify(reason)

    # Accessors

    @property
    def selected_index(self) -> int:
        return self._state.clamp_selection()

    @synchronized
    def current_screenshot(self) -> Screenshot | None:
        """Return the selected screenshot, clamping a stale index first."""
        if not self._state.screenshots:
            return None
        return self._state.screenshots[self._state.clamp_selection()]

    def get_current(self, kind: str) -> dict[str, Any]:
        """Live settings of the selected screenshot, or the project defaults."""
        if kind not in KIND_ATTRIBUTES:
            raise KeyError(f"Unknown settings kind: {kind}")
        screenshot = self.current_screenshot()
        if screenshot is None:
            return self._state.defaults["screenshot" if kind == "transform" else kind]
        return screenshot.settings(kind)

    def get_field(self, kind: str, path: str, default: Any = None) -> Any:
        node: Any = self.get_current(kind)
        for part in _split_path(path):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    # Setters

    @synchronized
    def set_field(self, kind: str, path: str, value: Any) -> bool:
        """Assign ``value`` at a dotted path in the selected screenshot.

        Without a selected screenshot this is a no-op returning False.
        """
        screenshot = self.current_screenshot()
        if screenshot is None:
            return False
        parts = _split_path(path)
        parent = _walk(screenshot.settings(kind), parts[:-1], create=True)
        if parent is None:
            logger.warning("Cannot set %s.%s: path crosses a non-object value", kind, path)
            return False
        parent[parts[-1]] = value
        if kind == "text":
            normalize_text(screenshot.text)
        self._notify(CHANGE_FIELD)
        return True

    @synchronized
    def set_default_field(self, kind: str, path: str, value: Any) -> bool:
        parts = _split_path(path)
        key = "screenshot" if kind == "transform" else kind
        parent = _walk(self._state.defaults[key], parts[:-1], create=True)
        if parent is None:
            return False
        parent[parts[-1]] = value
        if key == "text":
            normalize_text(self._state.defaults["text"])
        self._notify(CHANGE_FIELD)
        return True

    @synchronized
    def set_text(self, field: str, value: str, lang: str | None = None) -> bool:
        """Set the localized headline/subheadline of the selected screenshot."""
        if field not in ("headline", "subheadline"):
            raise ValueError(f"Unknown text field: {field}")
        lang = lang or self._state.current_language
        if lang not in self._state.project_languages:
            logger.warning("Cannot set %s for %s: not a project language", field, lang)
            return False
        return self.set_field("text", f"{field}s.{lang}", value)

    @synchronized
    def select(self, index: int) -> int:
        self._state.selected_index = index
        selected = self._state.clamp_selection()
        self._notify(CHANGE_SELECTION)
        return selected

    @synchronized
    def set_current_language(self, lang: str) -> bool:
        if lang not in self._state.project_languages:
            return False
        self._state.current_language = lang
        for screenshot in self._state.screenshots:
            localization.sync_legacy_image(screenshot, lang)
        self._notify(CHANGE_LANGUAGE)
        return True

    @synchronized
    def set_output_device(self, device: str, width: int | None = None, height: int | None = None) -> bool:
        if device != CUSTOM_OUTPUT_DEVICE and device not in OUTPUT_DEVICES:
            return False
        self._state.output_device = device
        if width is not None:
            self._state.custom_width = max(1, int(width))
        if height is not None:
            self._state.custom_height = max(1, int(height))
        self._notify(CHANGE_FIELD)
        return True

    # Screenshot list

    @synchronized
    def add_screenshot(self, name: str = "", select: bool = True) -> Screenshot:
        screenshot = Screenshot.from_defaults(self._state.defaults, name=name)
        self._state.screenshots.append(screenshot)
        if select:
            self._state.selected_index = len(self._state.screenshots) - 1
        self._notify(CHANGE_STRUCTURE)
        return screenshot

    @synchronized
    def remove_screenshot(self, index: int) -> Screenshot | None:
        if not 0 <= index < len(self._state.screenshots):
            return None
        removed = self._state.screenshots.pop(index)
        if self._state.selected_index > index:
            self._state.selected_index -= 1
        self._state.clamp_selection()
        self._notify(CHANGE_STRUCTURE)
        return removed

    @synchronized
    def duplicate_screenshot(self, index: int) -> Screenshot | None:
        if not 0 <= index < len(self._state.screenshots):
            return None
        copy = deepcopy(self._state.screenshots[index])
        copy.uid = new_uid()
        copy.name = f"{copy.name} (copy)" if copy.name else copy.name
        self._state.screenshots.insert(index + 1, copy)
        self._state.selected_index = index + 1
        self._notify(CHANGE_STRUCTURE)
        return copy

    @synchronized
    def move_screenshot(self, source: int, target: int) -> bool:
        screenshots = self._state.screenshots
        if not (0 <= source < len(screenshots) and 0 <= target < len(screenshots)) or source == target:
            return False
        selected = self.current_screenshot()
        screenshots.insert(target, screenshots.pop(source))
        if selected is not None:
            self._state.selected_index = next(i for i, item in enumerate(screenshots) if item is selected)
        self._notify(CHANGE_STRUCTURE)
        return True

    @synchronized
    def touch(self, reason: str = CHANGE_FIELD) -> None:
        """Notify subscribers after an in-place edit through a live reference."""
        self._notify(reason)


def get_canvas_dimensions(state: ProjectState) -> dict[str, int]:
    if state.output_device == CUSTOM_OUTPUT_DEVICE:
        return {"width": max(1, int(state.custom_width)), "height": max(1, int(state.custom_height))}
    return dict(OUTPUT_DEVICES.get(state.output_device) or next(iter(OUTPUT_DEVICES.values())))


def format_value(value: float) -> str:
    """Slider label: integers as-is, everything else with one decimal."""
    rounded = math.floor(float(value) * 10 + 0.5) / 10
    if rounded.is_integer():
        return str(int(rounded))
    return f"{rounded:.1f}"
