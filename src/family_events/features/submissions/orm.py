"""SQLAlchemy table for event records."""

from __future__ import annotations

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from family_events.db import Base

from .models import EventRecord


class EventRecordRow(Base):
    """One persisted EventRecord; ``email_key`` is the lowercased lookup column."""

    __tablename__ = "event_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email_key: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    relation: Mapped[str] = mapped_column(String(255), nullable=False)
    submitted_at: Mapped[str] = mapped_column(String(40), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    occasion_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    event_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_of_event: Mapped[str | None] = mapped_column(String(32), nullable=True)
    gotra: Mapped[str | None] = mapped_column(String(255), nullable=True)
    nakshatra: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rashi: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tamil_month: Mapped[str | None] = mapped_column(String(64), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    @classmethod
    def from_record(cls, record: EventRecord) -> EventRecordRow:
        return cls(email_key=record.email_key, **record.as_dict())

    def to_record(self) -> EventRecord:
        return EventRecord(
            email=self.email,
            relation=self.relation,
            submitted_at=self.submitted_at,
            name=self.name,
            occasion_name=self.occasion_name,
            event_description=self.event_description,
            date_of_event=self.date_of_event,
            gotra=self.gotra,
            nakshatra=self.nakshatra,
            rashi=self.rashi,
            tamil_month=self.tamil_month,
            phone=self.phone,
            address=self.address,
        )


__all__ = ["EventRecordRow"]
