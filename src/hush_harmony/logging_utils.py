"""Structured logging helpers.

Collector modules log snake_case event names and pass their context through
``extra=``; the JSON formatter lifts those fields into the emitted object.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from logging.handlers import RotatingFileHandler
from typing import Any

from .config import LoggingConfig

# Attributes present on every LogRecord; anything else arrived via ``extra=``.
_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def event_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the ``extra=`` context attached to a record."""

    return {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS}


class JsonFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key, value in event_fields(record).items():
            payload.setdefault(key, value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # Timestamps, enums and exceptions in extras fall back to str().
        return json.dumps(payload, default=str)


def configure_logging(config: LoggingConfig) -> None:
    """Install a root handler for the collector process."""

    level = getattr(logging, config.level.upper(), logging.INFO)
    handler: logging.Handler
    if config.log_file:
        handler = RotatingFileHandler(config.log_file, maxBytes=config.max_bytes, backupCount=config.backup_count)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if config.json_format else logging.Formatter(TEXT_FORMAT))
    logging.basicConfig(level=level, handlers=[handler])
