"""Logging configuration for the page context service."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

DEFAULT_LOG_DIR = Path(os.getenv("APP_LOG_DIR", "logs"))
DEFAULT_LOG_FILE = os.getenv("APP_LOG_FILENAME", "recovery-assist.log")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

# Third-party loggers that are too chatty at DEBUG.
NOISY_LOGGERS = ("urllib3", "httpx", "httpcore")


def _normalise_level(level: Optional[str | int]) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        value = level.strip().upper()
        if value.isdigit():
            return int(value)
        mapped = logging.getLevelName(value)
        if isinstance(mapped, int):
            return mapped
    return logging.INFO


def configure_logging(level: Optional[str | int] = None, log_dir: Optional[Path] = None) -> Path:
    """Send logs to the console and to a log file truncated on each start.

    Returns the log file path.
    """

    log_level = _normalise_level(level)
    directory = log_dir or DEFAULT_LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / DEFAULT_LOG_FILE

    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_path, mode="w", encoding="utf-8"),
        ],
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.getLogger(__name__).info("Logging initialised at %s (level %s)", log_path, logging.getLevelName(log_level))
    return log_path
