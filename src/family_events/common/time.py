"""Time helpers."""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def isoformat_z(value: datetime) -> str:
    """Render ``value`` as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""

    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


__all__ = ["isoformat_z", "utc_now"]
