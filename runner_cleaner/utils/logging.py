"""Structured JSON logging helpers for cleanup events."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

DEFAULT_LOGGER_NAME = "runner_cleaner"

CORRELATION_FIELDS: tuple[str, ...] = (
    "scope",
    "group_id",
    "runner_id",
    "runner_name",
    "runner_description",
    "runner_type",
    "status",
    "decision",
    "page",
    "per_page",
    "total_items",
    "total_pages",
    "count",
    "dry_run",
    "error_type",
    "error_message",
    "summary",
)


class JsonFormatter(logging.Formatter):
    """Format log records as JSON with the correlation fields set on the record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": getattr(record, "event", "unknown"),
        }

        for name in CORRELATION_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value

        message = record.getMessage()
        if message:
            payload["message"] = message

        if record.exc_info and record.levelno >= logging.ERROR:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def get_structured_logger(name: str = DEFAULT_LOGGER_NAME, level: int | str = logging.INFO) -> logging.Logger:
    """Return a logger configured to emit JSON records on stderr."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def log_cleanup_event(
    logger: logging.Logger,
    *,
    event: str,
    message: str = "",
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit a structured cleanup event.

    Only names listed in ``CORRELATION_FIELDS`` are accepted, so a typo at a
    call site fails loudly instead of silently dropping context.
    """
    unknown = set(fields) - set(CORRELATION_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log fields: {', '.join(sorted(unknown))}")

    extra: dict[str, Any] = {"event": event, **fields}
    logger.log(level, message, extra=extra)
