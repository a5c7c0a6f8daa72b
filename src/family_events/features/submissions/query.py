"""Date filtering and the admin display ordering for event records."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from family_events.common.errors import SubmissionValidationError

from .models import EventRecord

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def parse_event_date(value: str | None) -> date | None:
    """Return the calendar date for a ``YYYY-MM-DD`` string, else ``None``."""

    if not value:
        return None
    match = _ISO_DATE.match(value.strip())
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class RecordFilter:
    """Optional month (1-12) and year constraints on ``dateOfEvent``.

    Both given: exact year-month. One given: that dimension only. Neither:
    everything, including records without a usable date.
    """

    month: int | None = None
    year: int | None = None

    def __post_init__(self) -> None:
        if self.month is not None and not 1 <= self.month <= 12:
            raise SubmissionValidationError("month must be between 1 and 12")
        if self.year is not None and not 1 <= self.year <= 9999:
            raise SubmissionValidationError("year must be between 1 and 9999")

    @property
    def is_empty(self) -> bool:
        return self.month is None and self.year is None

    def matches(self, record: EventRecord) -> bool:
        if self.is_empty:
            return True
        parsed = parse_event_date(record.date_of_event)
        if parsed is None:
            return False
        if self.month is not None and parsed.month != self.month:
            return False
        if self.year is not None and parsed.year != self.year:
            return False
        return True

    @classmethod
    def from_query(cls, month: str | None, year: str | None) -> RecordFilter:
        """Build a filter from raw query strings; blank means "not given"."""

        return cls(month=_parse_int(month, "month"), year=_parse_int(year, "year"))


def _parse_int(raw: str | None, name: str) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        raise SubmissionValidationError(f"{name} must be a number") from None


def display_sort_key(record: EventRecord) -> tuple:
    """Sort key for the admin view.

    Undated records first, then recurring-anniversary order: month, day, year,
    and finally name.
    """

    name = record.name or ""
    parsed = parse_event_date(record.date_of_event)
    if parsed is None:
        return (0, 0, 0, 0, name)
    return (1, parsed.month, parsed.day, parsed.year, name)


def sort_for_display(records: Iterable[EventRecord]) -> list[EventRecord]:
    return sorted(records, key=display_sort_key)


def apply_filter(records: Iterable[EventRecord], record_filter: RecordFilter | None) -> list[EventRecord]:
    if record_filter is None or record_filter.is_empty:
        return list(records)
    return [record for record in records if record_filter.matches(record)]


__all__ = [
    "RecordFilter",
    "apply_filter",
    "display_sort_key",
    "parse_event_date",
    "sort_for_display",
]
