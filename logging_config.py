from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Iterable, Sequence

from settings import get_settings

_READING_CONTEXT_KEYS = (
    "reading_id",
    "temp",
    "hum",
    "timestamp",
    "limit",
    "page",
    "page_size",
    "total",
    "reason",
    "store",
)

_configured = False


class ReadingContextFormatter(logging.Formatter):
    """Append known ``extra=`` fields to each line as ``key=value`` pairs."""

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        context_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._context_keys: Sequence[str] = tuple(context_keys or _READING_CONTEXT_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = [
            f"{key}={getattr(record, key)}"
            for key in self._context_keys
            if getattr(record, key, None) is not None
        ]
        if not pairs:
            return line
        return f"{line} | {' '.join(pairs)}"


def _build_config(log_level: str | int) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "reading_context": {
                "()": "logging_config.ReadingContextFormatter",
                "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "context_keys": list(_READING_CONTEXT_KEYS),
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "reading_context",
            }
        },
        "loggers": {
            # uvicorn installs its own handlers unless told otherwise.
            "uvicorn": {"handlers": ["console"], "level": log_level, "propagate": False},
            "uvicorn.access": {"handlers": ["console"], "level": log_level, "propagate": False},
        },
        "root": {"handlers": ["console"], "level": log_level},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Install the process-wide logging setup once."""
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_settings().log_level
    dictConfig(_build_config(log_level))
    _configured = True
