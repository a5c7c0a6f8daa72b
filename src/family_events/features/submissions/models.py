"""Event record types and the fixed tabular column schema."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, fields
from typing import Final

PRIMARY_RELATION: Final = "Self (Primary)"
NOT_AVAILABLE: Final = "N/A"
BLANK: Final = ""


@dataclass(frozen=True, slots=True)
class EventRecord:
    """One row per person-event entry.

    Optional fields stay ``None`` in Python; sentinel strings only appear when a
    record is projected onto a CSV row or an HTML cell.
    """

    email: str
    relation: str
    submitted_at: str
    name: str | None = None
    occasion_name: str | None = None
    event_description: str | None = None
    date_of_event: str | None = None
    gotra: str | None = None
    nakshatra: str | None = None
    rashi: str | None = None
    tamil_month: str | None = None
    phone: str | None = None
    address: str | None = None

    @property
    def email_key(self) -> str:
        return self.email.strip().lower()

    @property
    def is_primary(self) -> bool:
        return self.relation == PRIMARY_RELATION

    def as_dict(self) -> dict[str, str | None]:
        return {field.name: getattr(self, field.name) for field in fields(self)}


@dataclass(frozen=True, slots=True)
class Column:
    """A persisted EventRecord field: attribute name, header title, placeholder."""

    field: str
    title: str
    placeholder: str


# Declared order for every tabular representation (mirror file, admin table).
COLUMNS: Final[tuple[Column, ...]] = (
    Column("name", "Name", NOT_AVAILABLE),
    Column("email", "Email", NOT_AVAILABLE),
    Column("occasion_name", "Occasion Name", BLANK),
    Column("date_of_event", "Date of Event", BLANK),
    Column("event_description", "Event Description", BLANK),
    Column("gotra", "Gotra", NOT_AVAILABLE),
    Column("nakshatra", "Nakshatra", NOT_AVAILABLE),
    Column("rashi", "Rashi", NOT_AVAILABLE),
    Column("tamil_month", "Tamil Month", BLANK),
    Column("phone", "Phone No.", NOT_AVAILABLE),
    Column("address", "Address", BLANK),
    Column("relation", "Relation to Primary", NOT_AVAILABLE),
    Column("submitted_at", "Submitted At", BLANK),
)

HEADER: Final[tuple[str, ...]] = tuple(column.title for column in COLUMNS)

_REQUIRED_FIELDS: Final = frozenset({"email", "relation", "submitted_at"})


def to_row(record: EventRecord) -> list[str]:
    """Project ``record`` onto the column schema, filling placeholders."""

    row: list[str] = []
    for column in COLUMNS:
        value = getattr(record, column.field)
        row.append(value if value not in (None, "") else column.placeholder)
    return row


def from_row(values: Sequence[str]) -> EventRecord:
    """Rebuild a record from a row in declared column order.

    Placeholder values map back to ``None`` for optional fields.
    """

    if len(values) != len(COLUMNS):
        raise ValueError(f"expected {len(COLUMNS)} values, got {len(values)}")

    kwargs: dict[str, str | None] = {}
    for column, value in zip(COLUMNS, values, strict=True):
        if column.field in _REQUIRED_FIELDS:
            kwargs[column.field] = value
        elif value == column.placeholder or value == "":
            kwargs[column.field] = None
        else:
            kwargs[column.field] = value
    return EventRecord(**kwargs)  # type: ignore[arg-type]


__all__ = [
    "BLANK",
    "COLUMNS",
    "Column",
    "EventRecord",
    "HEADER",
    "NOT_AVAILABLE",
    "PRIMARY_RELATION",
    "from_row",
    "to_row",
]
