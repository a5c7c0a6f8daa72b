from __future__ import annotations

import json
import re
import threading
from collections.abc import Callable
from pathlib import Path

import pytest

from family_events.common.errors import (
    AdminAuthError,
    QuotaExceededError,
    StorageError,
    SubmissionValidationError,
)
from family_events.features.submissions.ledger import EditLedger
from family_events.features.submissions.mirror import MirrorExporter, read_records
from family_events.features.submissions.schemas import SubmissionRequest
from family_events.features.submissions.service import (
    SubmissionService,
    build_submission_service,
    check_admin_password,
)
from family_events.features.submissions.store import DatabaseSubmissionStore
from family_events.settings import Settings

RequestFactory = Callable[..., SubmissionRequest]

TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def test_first_submission_inserts(service: SubmissionService, make_request: RequestFactory) -> None:
    result = service.submit(
        make_request(family=[{"name": "Ravi", "relation": "Husband"}, {"name": "Mira"}])
    )

    assert result.mode == "insert"
    assert result.edit_count == 1
    assert result.records == 3
    assert result.email_key == "asha@example.com"

    stored = service.store.scan()
    assert [record.relation for record in stored] == ["Self (Primary)", "Husband", "Family Member 2"]
    assert {record.email for record in stored} == {"Asha@Example.com"}
    assert len({record.submitted_at for record in stored}) == 1
    assert TIMESTAMP.match(stored[0].submitted_at)


def test_resubmission_replaces_previous_records(
    service: SubmissionService,
    make_request: RequestFactory,
) -> None:
    service.submit(make_request(family=[{"name": "Ravi"}, {"name": "Mira"}]))
    service.submit(make_request(email="bala@example.com", name="Bala"))

    result = service.submit(make_request(email="ASHA@example.com", family=[{"name": "Ravi"}]))

    assert result.mode == "replace"
    assert result.replaced == 3
    assert result.edit_count == 2
    names = sorted(record.name or "" for record in service.store.scan())
    assert names == ["Asha", "Bala", "Ravi"]


def test_quota_allows_exactly_max_edits(
    service: SubmissionService,
    make_request: RequestFactory,
) -> None:
    counts = [service.submit(make_request(name=f"Asha v{n}")).edit_count for n in range(3)]
    assert counts == [1, 2, 3]
    before = service.store.scan()

    with pytest.raises(QuotaExceededError) as excinfo:
        service.submit(make_request(name="Asha v4"))

    assert excinfo.value.message == "Edit limit of 3 reached"
    assert excinfo.value.status_code == 400
    assert service.store.scan() == before
    assert service.edit_count("asha@example.com") == 3


def test_quota_is_per_identity_and_case_insensitive(
    service: SubmissionService,
    make_request: RequestFactory,
) -> None:
    for email in ("asha@example.com", "ASHA@example.com", " Asha@Example.Com "):
        service.submit(make_request(email=email))

    with pytest.raises(QuotaExceededError):
        service.submit(make_request(email="asha@EXAMPLE.com"))

    assert service.submit(make_request(email="bala@example.com", name="Bala")).edit_count == 1


def test_validation_error_has_no_side_effects(
    service: SubmissionService,
    make_request: RequestFactory,
) -> None:
    with pytest.raises(SubmissionValidationError):
        service.submit(make_request(name=""))
    with pytest.raises(SubmissionValidationError):
        service.submit(SubmissionRequest())

    assert service.store.scan() == []
    assert service.ledger.snapshot() == {}


def test_edit_count_for_unknown_or_blank_email(service: SubmissionService) -> None:
    assert service.edit_count("nobody@example.com") == 0
    assert service.edit_count("") == 0
    assert service.edit_count(None) == 0


def test_delete_identity_resets_quota(
    service: SubmissionService,
    make_request: RequestFactory,
) -> None:
    for _ in range(3):
        service.submit(make_request(family=[{"name": "Ravi"}]))
    service.submit(make_request(email="bala@example.com", name="Bala"))

    removed = service.delete_identity("ASHA@example.com")

    assert removed == 2
    assert service.edit_count("asha@example.com") == 0
    assert [record.name for record in service.store.scan()] == ["Bala"]
    assert service.submit(make_request()).mode == "insert"


def test_delete_unknown_identity_is_noop(service: SubmissionService) -> None:
    assert service.delete_identity("nobody@example.com") == 0


def test_delete_requires_email(service: SubmissionService) -> None:
    with pytest.raises(SubmissionValidationError):
        service.delete_identity("  ")


def test_reset_edits_keeps_records(
    service: SubmissionService,
    make_request: RequestFactory,
) -> None:
    service.submit(make_request())

    assert service.reset_edits("Asha@example.com") is True
    assert service.reset_edits("Asha@example.com") is False
    assert service.edit_count("asha@example.com") == 0
    assert len(service.store.scan()) == 1


def test_list_for_admin_sorts_records(
    service: SubmissionService,
    make_request: RequestFactory,
) -> None:
    service.submit(make_request(email="a@example.com", name="A", date_of_event="2025-01-05"))
    service.submit(make_request(email="b@example.com", name="B", date_of_event="2024-03-15"))
    service.submit(make_request(email="c@example.com", name="C"))

    assert [record.name for record in service.list_for_admin()] == ["C", "A", "B"]


def test_mirror_tracks_database_store(
    database_service: SubmissionService,
    make_request: RequestFactory,
) -> None:
    database_service.submit(make_request(family=[{"name": "Ravi"}]))

    mirrored = read_records(database_service.mirror.path)
    assert mirrored == database_service.store.scan()

    database_service.delete_identity("asha@example.com")
    assert read_records(database_service.mirror.path) == []


def test_mirror_failure_is_swallowed_with_database_store(
    tmp_path: Path,
    database_store: DatabaseSubmissionStore,
    ledger: EditLedger,
    make_request: RequestFactory,
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    service = SubmissionService(
        store=database_store,
        ledger=ledger,
        mirror=MirrorExporter(blocker / "family_event_data.csv"),
    )

    result = service.submit(make_request())

    assert result.edit_count == 1
    assert len(database_store.scan()) == 1
    with pytest.raises(StorageError):
        service.export_mirror()


def test_csv_store_write_failure_is_fatal(
    tmp_path: Path,
    make_request: RequestFactory,
    ledger: EditLedger,
) -> None:
    from family_events.features.submissions.store import CsvSubmissionStore

    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    path = blocker / "family_event_data.csv"
    service = SubmissionService(
        store=CsvSubmissionStore(path),
        ledger=ledger,
        mirror=MirrorExporter(path),
    )

    with pytest.raises(StorageError):
        service.submit(make_request())

    assert ledger.get_count("asha@example.com") == 0


def test_export_mirror_returns_record_count(
    database_service: SubmissionService,
    make_request: RequestFactory,
) -> None:
    database_service.submit(make_request(family=[{"name": "Ravi"}]))
    database_service.mirror.path.unlink()

    assert database_service.export_mirror() == 2
    assert len(read_records(database_service.mirror.path)) == 2


def test_custom_max_edits(
    csv_service: SubmissionService,
    make_request: RequestFactory,
) -> None:
    service = SubmissionService(
        store=csv_service.store,
        ledger=csv_service.ledger,
        mirror=csv_service.mirror,
        max_edits=1,
    )
    service.submit(make_request())

    with pytest.raises(QuotaExceededError) as excinfo:
        service.submit(make_request())

    assert excinfo.value.message == "Edit limit of 1 reached"


def test_ledger_write_failure_leaves_records_untouched(
    service: SubmissionService,
    make_request: RequestFactory,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    service.submit(make_request(family=[{"name": "Ravi"}]))
    before = service.store.scan()

    def broken_write(counts: dict[str, int]) -> None:
        raise StorageError("Edit ledger write failed: disk full")

    monkeypatch.setattr(service.ledger, "_write", broken_write)

    for _ in range(2):
        with pytest.raises(StorageError):
            service.submit(make_request(name="Asha v2", family=[]))

    assert service.store.scan() == before
    assert service.edit_count("asha@example.com") == 1


@pytest.mark.parametrize("method", ["insert", "replace_for_identity"])
def test_store_failure_restores_edit_count(
    service: SubmissionService,
    make_request: RequestFactory,
    monkeypatch: pytest.MonkeyPatch,
    method: str,
) -> None:
    if method == "replace_for_identity":
        service.submit(make_request())
    expected = service.ledger.snapshot()

    def broken_store(*args: object) -> None:
        raise StorageError("store unavailable")

    monkeypatch.setattr(service.store, method, broken_store)

    with pytest.raises(StorageError):
        service.submit(make_request(name="Asha v2"))

    assert service.ledger.snapshot() == expected
    assert json.loads(service.ledger.path.read_text(encoding="utf-8")) == expected


def test_concurrent_submissions_leave_mirror_with_latest_snapshot(
    database_service: SubmissionService,
    make_request: RequestFactory,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    store = database_service.store
    original_scan = store.scan
    first_scanned = threading.Event()
    second_done = threading.Event()

    def slow_scan(record_filter=None):
        records = original_scan(record_filter)
        if threading.current_thread().name == "submit-asha" and not first_scanned.is_set():
            first_scanned.set()
            second_done.wait(timeout=0.5)
        return records

    monkeypatch.setattr(store, "scan", slow_scan)

    def submit_bala() -> None:
        first_scanned.wait(timeout=5)
        database_service.submit(make_request(email="bala@example.com", name="Bala"))
        second_done.set()

    first = threading.Thread(
        target=lambda: database_service.submit(make_request()),
        name="submit-asha",
    )
    second = threading.Thread(target=submit_bala, name="submit-bala")
    first.start()
    second.start()
    first.join(timeout=5)
    second.join(timeout=5)

    mirrored = sorted(record.name or "" for record in read_records(database_service.mirror.path))
    assert mirrored == ["Asha", "Bala"]
    assert sorted(record.name or "" for record in store.scan()) == ["Asha", "Bala"]


def test_build_service_for_csv_backend(settings: Settings) -> None:
    service = build_submission_service(settings)

    assert service.store.mirrors_itself
    assert settings.mirror_path.exists()
    assert json.loads(settings.ledger_path.read_text(encoding="utf-8")) == {}


def test_build_service_for_database_backend(
    make_settings: Callable[..., Settings],
    session_factory,
) -> None:
    settings = make_settings(storage_backend="database", database_url="sqlite://")

    service = build_submission_service(settings, session_factory=session_factory)

    assert not service.store.mirrors_itself
    assert settings.mirror_path.exists()


def test_build_service_for_database_backend_requires_sessions(
    make_settings: Callable[..., Settings],
) -> None:
    with pytest.raises(ValueError):
        build_submission_service(make_settings(storage_backend="database"))


@pytest.mark.parametrize("candidate", [None, "", "wrong", "test-admin-password "])
def test_check_admin_password_rejects(candidate: str | None) -> None:
    with pytest.raises(AdminAuthError) as excinfo:
        check_admin_password(candidate, expected="test-admin-password")

    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Unauthorized"


def test_check_admin_password_accepts_exact_match() -> None:
    check_admin_password("test-admin-password", expected="test-admin-password")
