"""Shared pytest fixtures for the family events test suite."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.orm import Session, sessionmaker

from family_events.db import open_database
from family_events.features.submissions.ledger import EditLedger
from family_events.features.submissions.mirror import MirrorExporter
from family_events.features.submissions.schemas import PersonPayload, SubmissionRequest
from family_events.features.submissions.service import SubmissionService
from family_events.features.submissions.store import CsvSubmissionStore, DatabaseSubmissionStore
from family_events.settings import Settings

ADMIN_PASSWORD = "test-admin-password"

_ENV_KEYS = (
    "ADMIN_PASSWORD",
    "PORT",
    "DATABASE_URL",
)


@pytest.fixture(autouse=True)
def _clear_family_events_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep tests deterministic regardless of shell/.env overrides.
    for key in list(os.environ):
        if key.upper().startswith("FAMILY_EVENTS_"):
            monkeypatch.delenv(key, raising=False)
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    # setup_logging() replaces root handlers; put the originals back after each test.
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture()
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "admin_password": ADMIN_PASSWORD,
            "data_dir": tmp_path / "data",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture()
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture()
def make_person() -> Callable[..., PersonPayload]:
    def _make(**fields: Any) -> PersonPayload:
        return PersonPayload.model_validate(fields)

    return _make


@pytest.fixture()
def make_request() -> Callable[..., SubmissionRequest]:
    def _make(
        *,
        email: str = "Asha@Example.com",
        name: str = "Asha",
        family: list[dict[str, Any]] | None = None,
        **primary: Any,
    ) -> SubmissionRequest:
        return SubmissionRequest.model_validate(
            {
                "primary": {"email": email, "name": name, **primary},
                "family": family or [],
            }
        )

    return _make


@pytest.fixture()
def session_factory(make_settings: Callable[..., Settings]) -> Iterator[sessionmaker[Session]]:
    engine, factory = open_database(make_settings(database_url="sqlite://"))
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture()
def csv_store(settings: Settings) -> CsvSubmissionStore:
    store = CsvSubmissionStore(settings.mirror_path)
    store.initialize()
    return store


@pytest.fixture()
def database_store(session_factory: sessionmaker[Session]) -> DatabaseSubmissionStore:
    return DatabaseSubmissionStore(session_factory)


@pytest.fixture()
def ledger(settings: Settings) -> EditLedger:
    ledger = EditLedger(settings.ledger_path)
    ledger.load()
    return ledger


@pytest.fixture()
def csv_service(settings: Settings, csv_store: CsvSubmissionStore, ledger: EditLedger) -> SubmissionService:
    return SubmissionService(
        store=csv_store,
        ledger=ledger,
        mirror=MirrorExporter(settings.mirror_path),
        max_edits=settings.max_edits,
    )


@pytest.fixture()
def database_service(
    settings: Settings,
    database_store: DatabaseSubmissionStore,
    ledger: EditLedger,
) -> SubmissionService:
    return SubmissionService(
        store=database_store,
        ledger=ledger,
        mirror=MirrorExporter(settings.mirror_path),
        max_edits=settings.max_edits,
    )


@pytest.fixture(params=["csv", "database"])
def service(request: pytest.FixtureRequest) -> SubmissionService:
    return request.getfixturevalue(f"{request.param}_service")
