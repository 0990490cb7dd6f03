"""Centralized logging helpers.

Every entrypoint calls :func:`configure_logging` once; modules obtain their own
logger with ``logging.getLogger(__name__)`` and attach structured fields to
DEBUG records through :func:`extra_context`.
"""
from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from constants import Constants

_HANDLER_NAME = "gooverride-stderr"


def configure_logging(level: Optional[str] = None) -> None:
    """Install the stderr handler on the root logger.

    The level comes from ``level`` or the ``GOOVERRIDE_LOG_LEVEL`` environment
    variable and defaults to INFO. Calling this repeatedly only updates the level.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)
    if not isinstance(level_value, int):
        level_value = logging.INFO

    root = logging.getLogger()
    if not any(getattr(h, "name", None) == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level_value)


def add_file_handler(path: str) -> logging.Handler:
    """Mirror log records into ``path``."""
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(Constants.LOG_FILE_FORMAT))
    logging.getLogger().addHandler(file_handler)
    return file_handler


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when ``logger`` would emit DEBUG records."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra=`` mapping for a structured log record.

    ``None`` values are dropped so callers can pass optional fields freely.
    """
    return {key: value for key, value in fields.items() if value is not None}


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.monotonic()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.monotonic()

    def duration_ms(self) -> int:
        end = self._end if self._end is not None else time.monotonic()
        return int((end - self._start) * 1000)
