"""Logging configuration for lesson-progress-service.

Two output shapes, chosen by LOG_JSON:

  _ContainerFormatter: one human-readable line per record, for a
    terminal during local development.

  _JsonFormatter: one JSON object per line, for log aggregation in
    production.  Request context (request_id, user_id, ...) and the
    lesson identifiers passed through ``extra=`` become top-level keys,
    so "every progress update for course X" is a field filter rather
    than a regex.
"""

from __future__ import annotations

import datetime
import json
import logging
import sys
from contextvars import ContextVar

# Set by RequestContextMiddleware for the duration of each request.
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestIdFilter(logging.Filter):
    """Stamp the current request ID on records that do not carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        return True


def _utc_timestamp(record: logging.LogRecord) -> str:
    stamp = datetime.datetime.fromtimestamp(record.created, datetime.UTC)
    return stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z"


class _ContainerFormatter(logging.Formatter):
    """One line per record for a terminal, timestamps in UTC like the data.

    WARNING and above get a ``[filename:lineno]`` suffix on the first line,
    ahead of any traceback.
    """

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-8s %(name)s  %(message)s")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return _utc_timestamp(record)

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if record.levelno < logging.WARNING:
            return text
        first, newline, rest = text.partition("\n")
        return f"{first}  [{record.filename}:{record.lineno}]{newline}{rest}"


class _JsonFormatter(logging.Formatter):
    """One JSON object per line for the log pipeline."""

    # From the request-id filter, the request summary line, or extra= at call sites.
    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "user_id",
        "course_id",
        "lesson_id",
        "error_kind",
        "status_code",
        "duration_ms",
    )

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": _utc_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger to write to stdout.

    Args:
        level_name: Log level string (debug/info/warning/error).  Unknown
                    names fall back to INFO.
        json_format: Emit JSON lines instead of the single-line text format.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())
    handler.addFilter(_RequestIdFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Keep third-party loggers from flooding at DEBUG
    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "sqlalchemy.engine",
        "httpcore",
        "httpx",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
