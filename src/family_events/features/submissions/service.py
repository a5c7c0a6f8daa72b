"""Submission workflow: quota-gated upsert, admin listing and delete-by-email."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from family_events.common.errors import AdminAuthError, QuotaExceededError, StorageError
from family_events.common.locks import IdentityLocks
from family_events.common.logging import log_context
from family_events.common.time import isoformat_z, utc_now
from family_events.settings import DEFAULT_MAX_EDITS, Settings

from .identity import normalize_identity_key, require_primary
from .ledger import EditLedger
from .materializer import materialize_records
from .mirror import MirrorExporter
from .models import EventRecord
from .query import RecordFilter, sort_for_display
from .schemas import SubmissionRequest
from .store import CsvSubmissionStore, DatabaseSubmissionStore, SubmissionStore

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    email_key: str
    edit_count: int
    records: int
    mode: Literal["insert", "replace"]
    replaced: int = 0


def check_admin_password(candidate: str | None, *, expected: str) -> None:
    """Raise :class:`AdminAuthError` unless ``candidate`` equals ``expected``."""

    supplied = (candidate or "").encode("utf-8")
    if not supplied or not secrets.compare_digest(supplied, expected.encode("utf-8")):
        logger.warning("admin.unauthorized")
        raise AdminAuthError()


class SubmissionService:
    """Coordinate ledger, store and mirror for one deployment.

    All mutations for an identity run under that identity's lock so the quota
    read, the ledger increment, the store write and the mirror refresh cannot
    interleave with another request for the same email in this process.
    """

    def __init__(
        self,
        *,
        store: SubmissionStore,
        ledger: EditLedger,
        mirror: MirrorExporter,
        max_edits: int = DEFAULT_MAX_EDITS,
        family_limit: int | None = None,
        locks: IdentityLocks | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._mirror = mirror
        self._max_edits = max_edits
        self._family_limit = family_limit
        self._locks = locks or IdentityLocks()

    @property
    def store(self) -> SubmissionStore:
        return self._store

    @property
    def ledger(self) -> EditLedger:
        return self._ledger

    @property
    def mirror(self) -> MirrorExporter:
        return self._mirror

    # ---- Submissions -----------------------------------------------------

    def submit(self, request: SubmissionRequest) -> SubmissionResult:
        primary, key = require_primary(request.primary)

        with self._locks.hold(key):
            count = self._ledger.get_count(key)
            if count >= self._max_edits:
                logger.info(
                    "submission.quota_exceeded",
                    extra=log_context(email_key=key, edit_count=count, limit=self._max_edits),
                )
                raise QuotaExceededError(email_key=key, limit=self._max_edits)

            records = materialize_records(
                primary,
                request.family,
                submitted_at=isoformat_z(utc_now()),
                family_limit=self._family_limit,
            )

            fresh = count == 0 and not self._store.count_for_identity(key)
            edit_count = self._ledger.increment(key)

            replaced = 0
            try:
                if fresh:
                    mode: Literal["insert", "replace"] = "insert"
                    self._store.insert(records)
                else:
                    mode = "replace"
                    replaced = self._store.replace_for_identity(key, records)
            except StorageError:
                self._ledger.restore(key, count)
                logger.warning(
                    "submission.store_failed",
                    extra=log_context(email_key=key, edit_count=count),
                )
                raise

            self._mirror.refresh(self._store)

        logger.info(
            "submission.saved",
            extra=log_context(
                email_key=key,
                mode=mode,
                records=len(records),
                replaced=replaced,
                edit_count=edit_count,
            ),
        )
        return SubmissionResult(
            email_key=key,
            edit_count=edit_count,
            records=len(records),
            mode=mode,
            replaced=replaced,
        )

    def edit_count(self, email: str | None) -> int:
        """Return the ledger count for ``email``; unknown or blank emails are 0."""

        key = (email or "").strip().lower()
        if not key:
            return 0
        return self._ledger.get_count(key)

    # ---- Admin -----------------------------------------------------------

    def list_for_admin(self, record_filter: RecordFilter | None = None) -> list[EventRecord]:
        return sort_for_display(self._store.scan(record_filter))

    def delete_identity(self, email: str | None) -> int:
        """Remove every record of ``email`` and reset its edit count."""

        key = normalize_identity_key(email)
        with self._locks.hold(key):
            removed = self._store.delete_for_identity(key)
            had_entry = self._ledger.reset(key)
            self._mirror.refresh(self._store)

        logger.info(
            "submission.deleted",
            extra=log_context(email_key=key, deleted=removed, ledger_reset=had_entry),
        )
        return removed

    def reset_edits(self, email: str | None) -> bool:
        key = normalize_identity_key(email)
        with self._locks.hold(key):
            had_entry = self._ledger.reset(key)
        logger.info("ledger.reset", extra=log_context(email_key=key, existed=had_entry))
        return had_entry

    def export_mirror(self) -> int:
        """Rewrite the CSV backup from the store and return the record count."""

        records = self._store.scan()
        if not self._mirror.refresh(self._store):
            raise StorageError(f"Mirror export to {self._mirror.path} failed")
        return len(records)


def build_submission_service(
    settings: Settings,
    *,
    session_factory: sessionmaker[Session] | None = None,
) -> SubmissionService:
    """Wire the store, ledger and mirror selected by ``settings``.

    The database deployment needs ``session_factory``; the CSV deployment
    creates its file with a header row when it is missing.
    """

    mirror = MirrorExporter(settings.mirror_path)
    store: SubmissionStore
    if settings.storage_backend == "database":
        if session_factory is None:
            raise ValueError("A session factory is required for the database backend")
        store = DatabaseSubmissionStore(session_factory)
        mirror.ensure_exists()
        mirror.refresh(store)
    else:
        csv_store = CsvSubmissionStore(settings.mirror_path)
        csv_store.initialize()
        store = csv_store

    ledger = EditLedger(settings.ledger_path)
    ledger.load()

    logger.info(
        "submissions.ready",
        extra=log_context(
            storage_backend=settings.storage_backend,
            mirror_path=str(settings.mirror_path),
            ledger_path=str(settings.ledger_path),
            max_edits=settings.max_edits,
        ),
    )
    return SubmissionService(
        store=store,
        ledger=ledger,
        mirror=mirror,
        max_edits=settings.max_edits,
        family_limit=settings.family_member_limit,
    )


__all__ = [
    "SubmissionResult",
    "SubmissionService",
    "build_submission_service",
    "check_admin_password",
]
