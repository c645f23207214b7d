# -*- coding: utf-8 -*-
"""Settings persistence and validation."""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any

from screenstudio.constants import (
    CUSTOM_OUTPUT_DEVICE,
    DEFAULT_DB_FILE,
    DEFAULT_LANGUAGE,
    DEFAULT_OUTPUT_DEVICE,
    DEFAULT_SETTINGS_FILE,
    MAX_HISTORY,
    OUTPUT_DEVICES,
    SAVE_DEBOUNCE_MS,
)
from screenstudio.utils.file_utils import read_json_file, write_json_file

API_KEY_PLACEHOLDER = "USE_ENV_FILE"

ENV_API_KEYS = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "gemini": "GEMINI_API_KEY",
}

DEFAULT_CONFIG: dict[str, Any] = {
    "api_keys": {name: API_KEY_PLACEHOLDER for name in ENV_API_KEYS},
    "storage": {"enabled": True, "db_path": DEFAULT_DB_FILE},
    "autosave": {"debounce_ms": SAVE_DEBOUNCE_MS},
    "history": {"max_entries": MAX_HISTORY},
    "languages": {"fallback": DEFAULT_LANGUAGE, "default_project": [DEFAULT_LANGUAGE]},
    "output": {"device": DEFAULT_OUTPUT_DEVICE},
    "translation": {"provider": "openai"},
    "logging": {"dir": "."},
}


class ConfigError(ValueError):
    """Raised when settings are invalid."""


def get_default_config() -> dict[str, Any]:
    """Return a deep copy of the default config."""
    return deepcopy(DEFAULT_CONFIG)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load a simple .env file (KEY=VALUE)."""
    values: dict[str, str] = {}
    if not env_path.exists():
        return values

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key] = value
    return values


def _apply_env_overrides(config: dict[str, Any], env_values: dict[str, str]) -> dict[str, Any]:
    """Apply .env based overrides to runtime config."""
    merged = deepcopy(config)
    for name, env_name in ENV_API_KEYS.items():
        value = env_values.get(env_name, "").strip()
        if value:
            merged.setdefault("api_keys", {})[name] = value
    db_path = env_values.get("SCREENSTUDIO_DB_PATH", "").strip()
    if db_path:
        merged.setdefault("storage", {})["db_path"] = db_path
    return merged


def _resolve_paths(config: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    db_path = config.get("storage", {}).get("db_path")
    if db_path and db_path != ":memory:" and not Path(db_path).is_absolute():
        config["storage"]["db_path"] = str(base_dir / db_path)
    log_dir = config.get("logging", {}).get("dir")
    if log_dir and not Path(log_dir).is_absolute():
        config["logging"]["dir"] = str((base_dir / log_dir).resolve())
    return config


def validate_config(config: dict[str, Any]) -> None:
    """Validate the settings the state core depends on."""
    debounce = config.get("autosave", {}).get("debounce_ms")
    if not isinstance(debounce, int) or isinstance(debounce, bool) or not (100 <= debounce <= 60000):
        raise ConfigError("autosave.debounce_ms must be an int in range 100..60000")

    max_entries = config.get("history", {}).get("max_entries")
    if not isinstance(max_entries, int) or isinstance(max_entries, bool) or not (1 <= max_entries <= 500):
        raise ConfigError("history.max_entries must be an int in range 1..500")

    languages = config.get("languages", {})
    fallback = languages.get("fallback")
    if not isinstance(fallback, str) or not fallback:
        raise ConfigError("languages.fallback must be a language code")
    project_langs = languages.get("default_project")
    if not isinstance(project_langs, list) or not project_langs or not all(isinstance(x, str) and x for x in project_langs):
        raise ConfigError("languages.default_project must be a non-empty list of language codes")

    device = config.get("output", {}).get("device")
    if device != CUSTOM_OUTPUT_DEVICE and device not in OUTPUT_DEVICES:
        raise ConfigError(f"output.device must be one of: {', '.join([*OUTPUT_DEVICES, CUSTOM_OUTPUT_DEVICE])}")


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load config from JSON and merge into defaults."""
    config_path = Path(path or DEFAULT_SETTINGS_FILE)
    env_values = _load_env_file(config_path.parent / ".env")
    if not config_path.exists():
        merged = _apply_env_overrides(get_default_config(), env_values)
        return _resolve_paths(merged, config_path.parent.resolve())

    loaded = read_json_file(config_path)
    merged = _deep_merge(get_default_config(), loaded)
    merged = _apply_env_overrides(merged, env_values)
    validate_config(merged)
    return _resolve_paths(merged, config_path.parent.resolve())


def _strip_api_keys(config: dict[str, Any]) -> dict[str, Any]:
    """Replace real API keys with the .env placeholder before writing to disk."""
    config_copy = deepcopy(config)
    api_keys = config_copy.get("api_keys", {})
    for key_name in ENV_API_KEYS:
        value = api_keys.get(key_name)
        if value and value != API_KEY_PLACEHOLDER:
            api_keys[key_name] = API_KEY_PLACEHOLDER
    return config_copy


def save_config(config: dict[str, Any], path: str | Path | None = None) -> Path:
    """Validate and save config as JSON, without real API keys.

    API keys belong in the .env file next to settings.json.
    """
    validate_config(config)
    config_path = Path(path or DEFAULT_SETTINGS_FILE)
    write_json_file(config_path, _strip_api_keys(config))
    return config_path
