# -*- coding: utf-8 -*-
"""Console + per-session file logging setup."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

SESSION_LOG_FORMAT = "%(asctime)s [%(threadName)s] %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _env_level(name: str, default: int = logging.INFO) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else default


def setup_session_logging(base_dir: str | Path, app_name: str) -> Path | None:
    """Configure root logging for one app run and return the session log path.

    The level comes from ``SCREENSTUDIO_LOG_LEVEL`` (default INFO). Calling
    this twice is a no-op that returns the first session's log path.
    """
    root = logging.getLogger()
    if getattr(root, "_screenstudio_logging_configured", False):
        return getattr(root, "_screenstudio_session_log", None)

    level = _env_level("SCREENSTUDIO_LOG_LEVEL")
    root.setLevel(level)
    formatter = logging.Formatter(SESSION_LOG_FORMAT, datefmt=DATE_FORMAT)

    if not any(isinstance(handler, logging.StreamHandler) for handler in root.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

    logs_dir = Path(base_dir) / "logs"
    safe_app_name = app_name.lower().replace(" ", "-")
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    session_log_path: Path | None = logs_dir / f"{safe_app_name}-{timestamp}.log"
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(session_log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        root.info("Session log file established: %s", session_log_path)
    except OSError as exc:
        root.error("Failed to establish session log file: %s", exc)
        session_log_path = None

    root._screenstudio_logging_configured = True  # type: ignore[attr-defined]
    root._screenstudio_session_log = session_log_path  # type: ignore[attr-defined]
    return session_log_path
