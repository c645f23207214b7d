# -*- coding: utf-8 -*-
"""Tests for config persistence and validation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from screenstudio.config import (
    API_KEY_PLACEHOLDER,
    ConfigError,
    get_default_config,
    load_config,
    save_config,
    validate_config,
)


def test_default_config_has_all_keys() -> None:
    config = get_default_config()
    expected_keys = {
        "api_keys",
        "storage",
        "autosave",
        "history",
        "languages",
        "output",
        "translation",
        "logging",
    }
    assert expected_keys.issubset(config.keys())
    assert config["autosave"]["debounce_ms"] >= 500
    assert config["history"]["max_entries"] == 50


def test_default_config_is_a_copy() -> None:
    config = get_default_config()
    config["languages"]["default_project"].append("de")
    assert get_default_config()["languages"]["default_project"] == ["en"]


def test_missing_settings_file_returns_defaults(tmp_path: Path) -> None:
    loaded = load_config(tmp_path / "settings.json")
    assert loaded["output"]["device"] == "iphone-6.9"
    assert Path(loaded["storage"]["db_path"]).is_absolute()
    assert loaded["logging"]["dir"] == str(tmp_path.resolve())


def test_load_config_merges_partial_file(tmp_path: Path) -> None:
    target = tmp_path / "settings.json"
    target.write_text(json.dumps({"autosave": {"debounce_ms": 2500}}), encoding="utf-8")
    loaded = load_config(target)
    assert loaded["autosave"]["debounce_ms"] == 2500
    assert loaded["history"]["max_entries"] == 50


def test_relative_db_path_resolved_next_to_settings(tmp_path: Path) -> None:
    target = tmp_path / "settings.json"
    target.write_text(json.dumps({"storage": {"db_path": "data/projects.sqlite3"}}), encoding="utf-8")
    loaded = load_config(target)
    assert loaded["storage"]["db_path"] == str(tmp_path.resolve() / "data" / "projects.sqlite3")


def test_memory_db_path_kept(tmp_path: Path) -> None:
    target = tmp_path / "settings.json"
    target.write_text(json.dumps({"storage": {"db_path": ":memory:"}}), encoding="utf-8")
    assert load_config(target)["storage"]["db_path"] == ":memory:"


def test_env_file_overrides_api_keys_and_db_path(tmp_path: Path, default_config: dict) -> None:
    target = tmp_path / "settings.json"
    save_config(default_config, target)
    (tmp_path / ".env").write_text(
        "# keys\nOPENAI_API_KEY='sk-test'\nSCREENSTUDIO_DB_PATH=/tmp/other.sqlite3\n",
        encoding="utf-8",
    )
    loaded = load_config(target)
    assert loaded["api_keys"]["openai"] == "sk-test"
    assert loaded["api_keys"]["gemini"] == API_KEY_PLACEHOLDER
    assert loaded["storage"]["db_path"] == "/tmp/other.sqlite3"


def test_api_keys_not_written_to_settings(tmp_path: Path, default_config: dict) -> None:
    target = tmp_path / "settings.json"
    default_config["api_keys"]["openai"] = "abc"
    save_config(default_config, target)
    stored = json.loads(target.read_text(encoding="utf-8"))
    assert stored["api_keys"]["openai"] == API_KEY_PLACEHOLDER


def test_language_settings_persisted(tmp_path: Path, default_config: dict) -> None:
    target = tmp_path / "settings.json"
    default_config["languages"]["default_project"] = ["en", "de"]
    save_config(default_config, target)
    assert load_config(target)["languages"]["default_project"] == ["en", "de"]


@pytest.mark.parametrize("debounce", [0, 99, 60001, "1000", True])
def test_invalid_debounce_rejected(default_config: dict, debounce) -> None:
    default_config["autosave"]["debounce_ms"] = debounce
    with pytest.raises(ConfigError):
        validate_config(default_config)


def test_invalid_history_size_rejected(default_config: dict) -> None:
    default_config["history"]["max_entries"] = 0
    with pytest.raises(ConfigError):
        validate_config(default_config)


def test_empty_project_languages_rejected(default_config: dict) -> None:
    default_config["languages"]["default_project"] = []
    with pytest.raises(ConfigError):
        validate_config(default_config)


def test_unknown_output_device_rejected(default_config: dict) -> None:
    default_config["output"]["device"] = "watch"
    with pytest.raises(ConfigError):
        validate_config(default_config)


def test_custom_output_device_accepted(default_config: dict) -> None:
    default_config["output"]["device"] = "custom"
    validate_config(default_config)


def test_invalid_settings_file_raises(tmp_path: Path) -> None:
    target = tmp_path / "settings.json"
    target.write_text(json.dumps({"history": {"max_entries": 1000}}), encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(target)
