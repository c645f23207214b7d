# -*- coding: utf-8 -*-
"""Default settings trees for backgrounds, device transforms and text."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from screenstudio.constants import DEFAULT_LANGUAGE

SETTINGS_KINDS = ("background", "screenshot", "text")
LOCALIZED_TEXT_FIELDS = ("headline", "subheadline")

DEFAULT_BACKGROUND: dict[str, Any] = {
    "type": "gradient",
    "gradient": {
        "angle": 135,
        "stops": [
            {"color": "#667eea", "position": 0},
            {"color": "#764ba2", "position": 100},
        ],
    },
    "solid": "#1a1a2e",
    "image": None,
    "imageSrc": "",
    "imageFit": "cover",
    "imageBlur": 0,
    "overlayColor": "#000000",
    "overlayOpacity": 0,
    "noise": False,
    "noiseIntensity": 10,
}

DEFAULT_DEVICE_TRANSFORM: dict[str, Any] = {
    "scale": 70,
    "x": 50,
    "y": 60,
    "rotation": 0,
    "perspective": 0,
    "cornerRadius": 24,
    "use3D": False,
    "device3D": "iphone",
    "rotation3D": {"x": 0, "y": 0, "z": 0},
    "shadow": {"enabled": True, "color": "#000000", "blur": 40, "opacity": 30, "x": 0, "y": 20},
    "frame": {"enabled": False, "color": "#1d1d1f", "width": 12, "opacity": 100},
}

_SYSTEM_FONT = "-apple-system, BlinkMacSystemFont, 'SF Pro Display'"

DEFAULT_TEXT: dict[str, Any] = {
    "headlineEnabled": True,
    "headlines": {DEFAULT_LANGUAGE: ""},
    "headlineLanguages": [DEFAULT_LANGUAGE],
    "currentHeadlineLang": DEFAULT_LANGUAGE,
    "headlineFont": _SYSTEM_FONT,
    "headlineSize": 100,
    "headlineWeight": "600",
    "headlineColor": "#ffffff",
    "headlineItalic": False,
    "headlineUnderline": False,
    "headlineStrikethrough": False,
    "position": "top",
    "offsetY": 12,
    "lineHeight": 110,
    "stackedText": False,
    "subheadlineEnabled": False,
    "subheadlines": {DEFAULT_LANGUAGE: ""},
    "subheadlineLanguages": [DEFAULT_LANGUAGE],
    "currentSubheadlineLang": DEFAULT_LANGUAGE,
    "subheadlineFont": _SYSTEM_FONT,
    "subheadlineSize": 50,
    "subheadlineWeight": "400",
    "subheadlineColor": "#ffffff",
    "subheadlineItalic": False,
    "subheadlineUnderline": False,
    "subheadlineStrikethrough": False,
    "subheadlineOpacity": 70,
}

_DEFAULTS_BY_KIND = {
    "background": DEFAULT_BACKGROUND,
    "screenshot": DEFAULT_DEVICE_TRANSFORM,
    "text": DEFAULT_TEXT,
}


def default_background() -> dict[str, Any]:
    return deepcopy(DEFAULT_BACKGROUND)


def default_device_transform() -> dict[str, Any]:
    return deepcopy(DEFAULT_DEVICE_TRANSFORM)


def default_text(languages: list[str] | None = None) -> dict[str, Any]:
    """Return default text settings with an empty entry per language."""
    text = deepcopy(DEFAULT_TEXT)
    langs = list(languages or [DEFAULT_LANGUAGE])
    for field in LOCALIZED_TEXT_FIELDS:
        text[f"{field}s"] = {lang: "" for lang in langs}
        text[f"{field}Languages"] = list(langs)
        text[f"current{field[0].upper()}{field[1:]}Lang"] = langs[0]
    return text


def default_settings_tree(languages: list[str] | None = None) -> dict[str, Any]:
    """Return a full Background/DeviceTransform/Text tree."""
    return {
        "background": default_background(),
        "screenshot": default_device_transform(),
        "text": default_text(languages),
    }


def fill_missing(value: Any, defaults: Any) -> Any:
    """Deep-merge ``value`` over ``defaults`` without dropping unknown keys."""
    if not isinstance(defaults, dict):
        return deepcopy(value) if value is not None else deepcopy(defaults)
    if not isinstance(value, dict):
        return deepcopy(defaults)
    merged = deepcopy(defaults)
    for key, item in value.items():
        if isinstance(item, dict) and isinstance(merged.get(key), dict):
            merged[key] = fill_missing(item, merged[key])
        else:
            merged[key] = deepcopy(item)
    return merged


def fill_missing_kind(kind: str, value: Any) -> dict[str, Any]:
    return fill_missing(value, _DEFAULTS_BY_KIND[kind])


def _clamp_position(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    number = min(100.0, max(0.0, number))
    return int(number) if number.is_integer() else number


def normalize_background(background: dict[str, Any]) -> dict[str, Any]:
    """Repair gradient stops in place: at least two, positions in [0, 100]."""
    gradient = background.get("gradient")
    if not isinstance(gradient, dict):
        gradient = deepcopy(DEFAULT_BACKGROUND["gradient"])
        background["gradient"] = gradient

    stops = [stop for stop in gradient.get("stops") or [] if isinstance(stop, dict)]
    for stop in stops:
        stop.setdefault("color", "#000000")
        stop["position"] = _clamp_position(stop.get("position", 0))
    if background.get("type") == "gradient" and len(stops) < 2:
        defaults = deepcopy(DEFAULT_BACKGROUND["gradient"]["stops"])
        if not stops:
            stops = defaults
        else:
            stops.append({"color": stops[0]["color"], "position": 100})
    gradient["stops"] = stops
    return background


def normalize_text(text: dict[str, Any]) -> dict[str, Any]:
    """Repair language bookkeeping in place.

    Language lists always cover the keys of their text map, and the
    current language of each field is a member of its list.
    """
    for field in LOCALIZED_TEXT_FIELDS:
        values_key = f"{field}s"
        langs_key = f"{field}Languages"
        current_key = f"current{field[0].upper()}{field[1:]}Lang"

        values = text.get(values_key)
        if not isinstance(values, dict):
            values = {}
            text[values_key] = values
        langs = [lang for lang in text.get(langs_key) or [] if isinstance(lang, str)]
        for lang in values:
            if lang not in langs:
                langs.append(lang)
        if not langs:
            langs = [DEFAULT_LANGUAGE]
            values.setdefault(DEFAULT_LANGUAGE, "")
        text[langs_key] = langs
        if text.get(current_key) not in langs:
            text[current_key] = langs[0]
    return text
