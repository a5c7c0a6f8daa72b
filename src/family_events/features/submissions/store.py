"""Submission store: the authoritative collection of event records.

Two interchangeable deployments implement :class:`SubmissionStore`:

* :class:`CsvSubmissionStore` keeps everything in the flat CSV file, which
  therefore doubles as its own mirror.
* :class:`DatabaseSubmissionStore` keeps records in a SQLAlchemy table and
  relies on :class:`~family_events.features.submissions.mirror.MirrorExporter`
  for the CSV backup.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from family_events.common.errors import StorageError

from .mirror import ensure_csv, read_records, write_records
from .models import EventRecord
from .orm import EventRecordRow
from .query import RecordFilter, apply_filter


class SubmissionStore(ABC):
    """Insert, replace, delete and scan event records by identity key."""

    #: True when the store's own persistence is the CSV mirror file.
    mirrors_itself: bool = False

    @abstractmethod
    def insert(self, records: Sequence[EventRecord]) -> None:
        """Append ``records``; never deduplicates."""

    @abstractmethod
    def replace_for_identity(self, key: str, records: Sequence[EventRecord]) -> int:
        """Swap every record of ``key`` for ``records``; return how many were removed."""

    @abstractmethod
    def delete_for_identity(self, key: str) -> int:
        """Remove every record of ``key``; return how many were removed."""

    @abstractmethod
    def scan(self, record_filter: RecordFilter | None = None) -> list[EventRecord]:
        """Return stored records in insertion order, optionally date-filtered."""

    @abstractmethod
    def count_for_identity(self, key: str) -> int:
        """Return how many records belong to ``key``."""


class CsvSubmissionStore(SubmissionStore):
    """Flat-file store: each mutation reads, edits and atomically rewrites the CSV."""

    mirrors_itself = True

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def initialize(self) -> None:
        with self._lock:
            ensure_csv(self._path)

    def insert(self, records: Sequence[EventRecord]) -> None:
        with self._lock:
            existing = read_records(self._path)
            write_records(self._path, [*existing, *records])

    def replace_for_identity(self, key: str, records: Sequence[EventRecord]) -> int:
        with self._lock:
            existing = read_records(self._path)
            kept = [record for record in existing if record.email_key != key]
            write_records(self._path, [*kept, *records])
        return len(existing) - len(kept)

    def delete_for_identity(self, key: str) -> int:
        with self._lock:
            existing = read_records(self._path)
            kept = [record for record in existing if record.email_key != key]
            removed = len(existing) - len(kept)
            if removed:
                write_records(self._path, kept)
        return removed

    def scan(self, record_filter: RecordFilter | None = None) -> list[EventRecord]:
        with self._lock:
            records = read_records(self._path)
        return apply_filter(records, record_filter)

    def count_for_identity(self, key: str) -> int:
        return sum(1 for record in self.scan() if record.email_key == key)


class DatabaseSubmissionStore(SubmissionStore):
    """SQLAlchemy-backed store; every mutation is a single transaction."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def insert(self, records: Sequence[EventRecord]) -> None:
        try:
            with self._session_factory() as session, session.begin():
                session.add_all([EventRecordRow.from_record(record) for record in records])
        except SQLAlchemyError as exc:
            raise StorageError(f"Database insert failed: {exc}") from exc

    def replace_for_identity(self, key: str, records: Sequence[EventRecord]) -> int:
        try:
            with self._session_factory() as session, session.begin():
                result = session.execute(
                    delete(EventRecordRow).where(EventRecordRow.email_key == key)
                )
                session.add_all([EventRecordRow.from_record(record) for record in records])
        except SQLAlchemyError as exc:
            raise StorageError(f"Database replace failed: {exc}") from exc
        return int(result.rowcount or 0)

    def delete_for_identity(self, key: str) -> int:
        try:
            with self._session_factory() as session, session.begin():
                result = session.execute(
                    delete(EventRecordRow).where(EventRecordRow.email_key == key)
                )
        except SQLAlchemyError as exc:
            raise StorageError(f"Database delete failed: {exc}") from exc
        return int(result.rowcount or 0)

    def scan(self, record_filter: RecordFilter | None = None) -> list[EventRecord]:
        try:
            with self._session_factory() as session:
                rows = session.scalars(select(EventRecordRow).order_by(EventRecordRow.id)).all()
                records = [row.to_record() for row in rows]
        except SQLAlchemyError as exc:
            raise StorageError(f"Database read failed: {exc}") from exc
        return apply_filter(records, record_filter)

    def count_for_identity(self, key: str) -> int:
        try:
            with self._session_factory() as session:
                total = session.scalar(
                    select(func.count())
                    .select_from(EventRecordRow)
                    .where(EventRecordRow.email_key == key)
                )
        except SQLAlchemyError as exc:
            raise StorageError(f"Database read failed: {exc}") from exc
        return int(total or 0)


__all__ = [
    "CsvSubmissionStore",
    "DatabaseSubmissionStore",
    "SubmissionStore",
]
