"""SQLAlchemy wiring for the database-backed submission store."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from family_events.settings import Settings

logger = logging.getLogger(__name__)

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)


class Base(DeclarativeBase):
    metadata = metadata


def _is_sqlite_memory_url(url: URL) -> bool:
    database = (url.database or "").strip()
    if database in {"", ":memory:"}:
        return True
    return database.startswith("file::memory:")


def build_engine(settings: Settings) -> Engine:
    """Create the engine for ``settings.effective_database_url``."""

    url = make_url(settings.effective_database_url)
    connect_args: dict[str, Any] = {}
    engine_kwargs: dict[str, Any] = {"echo": settings.database_echo}

    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = 30
        if _is_sqlite_memory_url(url):
            engine_kwargs["poolclass"] = StaticPool
        elif url.database:
            settings.data_dir.mkdir(parents=True, exist_ok=True)

    if connect_args:
        engine_kwargs["connect_args"] = connect_args
    return create_engine(url, **engine_kwargs)


def create_schema(engine: Engine) -> None:
    # Import registers the tables on ``metadata``.
    from family_events.features.submissions import orm  # noqa: F401

    metadata.create_all(engine)


def open_database(settings: Settings) -> tuple[Engine, sessionmaker[Session]]:
    """Build the engine, ensure the schema exists and return a session factory."""

    engine = build_engine(settings)
    create_schema(engine)
    return engine, sessionmaker(bind=engine, expire_on_commit=False)


def init_db(app: FastAPI, settings: Settings) -> sessionmaker[Session]:
    """Open the database and park the engine + session factory on ``app.state``."""

    existing = getattr(app.state, "db_engine", None)
    if existing is not None:
        existing.dispose()

    engine, session_factory = open_database(settings)
    app.state.db_engine = engine
    app.state.db_sessionmaker = session_factory
    logger.info(
        "db.initialized",
        extra={"backend": engine.url.get_backend_name(), "database": engine.url.database},
    )
    return session_factory


def shutdown_db(app: FastAPI) -> None:
    engine = getattr(app.state, "db_engine", None)
    if engine is not None:
        engine.dispose()
    app.state.db_engine = None
    app.state.db_sessionmaker = None


__all__ = [
    "Base",
    "build_engine",
    "create_schema",
    "init_db",
    "metadata",
    "open_database",
    "shutdown_db",
]
