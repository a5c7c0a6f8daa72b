"""Logging setup for the family events service.

Lines are rendered either as readable console text or as one JSON object per
line. The request middleware binds a correlation ID for the duration of a
request, and domain code passes structured fields through ``extra`` built with
:func:`log_context`.
"""

from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from family_events.settings import Settings

_CORRELATION_ID: ContextVar[str | None] = ContextVar(
    "family_events_correlation_id",
    default=None,
)

# Everything a bare LogRecord carries, plus what formatting adds on top.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "correlation_id", "color_message"}

_ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
_SQL_LOGGERS = ("sqlalchemy", "sqlalchemy.engine", "sqlalchemy.pool")


def _timestamp(record: logging.LogRecord) -> str:
    created = datetime.fromtimestamp(record.created, tz=UTC)
    return f"{created:%Y-%m-%dT%H:%M:%S}.{int(record.msecs):03d}Z"


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


def _correlation_id(record: logging.LogRecord) -> str:
    cid = getattr(record, "correlation_id", None) or _CORRELATION_ID.get() or "-"
    record.correlation_id = cid
    return cid


class ConsoleLogFormatter(logging.Formatter):
    """One readable line per record, extras appended as sorted ``key=value``.

        2026-03-02T09:14:21.044Z INFO  family_events... [cid=5f0c] submission.saved edit_count=1
    """

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-5s %(name)s [cid=%(correlation_id)s] %(message)s")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return _timestamp(record)

    def format(self, record: logging.LogRecord) -> str:
        _correlation_id(record)
        line = super().format(record)
        pairs = " ".join(
            f"{key}={'null' if value is None else value}"
            for key, value in sorted(_extras(record).items())
        )
        return f"{line} {pairs}" if pairs else line


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "service": "family-events",
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": _correlation_id(record),
        }
        payload.update(_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


def setup_logging(settings: Settings) -> None:
    """Install a single root handler and route server and SQL loggers to it."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter() if settings.log_format == "json" else ConsoleLogFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, settings.log_level))

    sql_level = getattr(logging, settings.database_log_level or "WARNING")
    for name in (*_ROUTED_LOGGERS, *_SQL_LOGGERS):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True
        logger.disabled = False
        logger.setLevel(sql_level if name in _SQL_LOGGERS else logging.NOTSET)

    if not settings.access_log_enabled:
        access = logging.getLogger("uvicorn.access")
        access.propagate = False
        access.disabled = True


def bind_request_context(correlation_id: str | None) -> None:
    _CORRELATION_ID.set(correlation_id)


def clear_request_context() -> None:
    _CORRELATION_ID.set(None)


def log_context(*, email_key: str | None = None, **extra: Any) -> dict[str, Any]:
    """Build the ``extra`` mapping for a structured log call.

    ``email_key`` is only included when given, so callers can pass it through
    unconditionally.
    """

    ctx: dict[str, Any] = {} if email_key is None else {"email_key": email_key}
    ctx.update(extra)
    return ctx


__all__ = [
    "ConsoleLogFormatter",
    "JsonLogFormatter",
    "bind_request_context",
    "clear_request_context",
    "log_context",
    "setup_logging",
]
