# -*- coding: utf-8 -*-
"""Application entry point."""

from __future__ import annotations

import logging
from pathlib import Path

from screenstudio.cli import app
from screenstudio.config import ConfigError, load_config
from screenstudio.constants import APP_NAME, APP_VERSION
from screenstudio.utils.logger import setup_session_logging


def _log_dir() -> Path:
    try:
        return Path(load_config()["logging"]["dir"])
    except (ConfigError, OSError, ValueError):
        return Path.cwd()


def main() -> int:
    """Run the command line app with session logging."""
    session_log_path = setup_session_logging(_log_dir(), APP_NAME)
    if session_log_path is not None:
        logging.getLogger(__name__).info("%s %s session log file: %s", APP_NAME, APP_VERSION, session_log_path)
    app()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
