"""Expand one submission into a flat, primary-first batch of event records."""

from __future__ import annotations

from collections.abc import Sequence

from .models import PRIMARY_RELATION, EventRecord
from .schemas import PersonPayload


def family_relation_label(index: int) -> str:
    """Default relation for the family member at zero-based ``index``."""

    return f"Family Member {index + 1}"


def _record_for(person: PersonPayload, *, email: str, relation: str, submitted_at: str) -> EventRecord:
    return EventRecord(
        email=email,
        relation=relation,
        submitted_at=submitted_at,
        name=person.name,
        occasion_name=person.occasion_name,
        event_description=person.event_description,
        date_of_event=person.date_of_event,
        gotra=person.gotra,
        nakshatra=person.nakshatra,
        rashi=person.rashi,
        tamil_month=person.tamil_month,
        phone=person.phone,
        address=person.address,
    )


def materialize_records(
    primary: PersonPayload,
    family: Sequence[PersonPayload],
    *,
    submitted_at: str,
    family_limit: int | None = None,
) -> list[EventRecord]:
    """Return the batch for one submission.

    The primary comes first with relation ``Self (Primary)``; family members
    follow in input order, each carrying the primary's email. A family member
    may not claim the primary relation. Entirely blank
    family rows are skipped before numbering, and ``family_limit`` (when set)
    truncates what remains.
    """

    if not primary.email:
        raise ValueError("primary email is required to materialize a batch")
    email = primary.email

    members = [member for member in family if not member.is_blank()]
    if family_limit is not None:
        members = members[:family_limit]

    records = [_record_for(primary, email=email, relation=PRIMARY_RELATION, submitted_at=submitted_at)]
    for index, member in enumerate(members):
        relation = member.relation
        if not relation or relation == PRIMARY_RELATION:
            relation = family_relation_label(index)
        records.append(_record_for(member, email=email, relation=relation, submitted_at=submitted_at))
    return records


__all__ = ["family_relation_label", "materialize_records"]
