"""FastAPI lifespan helpers for the family events application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import Lifespan

from family_events.common.logging import log_context
from family_events.db import init_db, shutdown_db
from family_events.features.submissions.service import build_submission_service
from family_events.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def ensure_runtime_dirs(settings: Settings | None = None) -> None:
    """Create runtime directories required by the application."""

    resolved = settings or get_settings()
    resolved.data_dir.mkdir(parents=True, exist_ok=True)


def create_application_lifespan(
    *,
    settings: Settings,
) -> Lifespan[FastAPI]:
    """Return the FastAPI lifespan handler used by the app factory."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        ensure_runtime_dirs(settings)
        app.state.settings = settings

        session_factory = None
        if settings.storage_backend == "database":
            session_factory = init_db(app, settings)
        app.state.submission_service = build_submission_service(
            settings,
            session_factory=session_factory,
        )

        logger.info(
            "app.startup.complete",
            extra=log_context(
                storage_backend=settings.storage_backend,
                data_dir=str(settings.data_dir),
                static_dir=str(settings.static_dir),
            ),
        )
        try:
            yield
        finally:
            app.state.submission_service = None
            shutdown_db(app)
            logger.info("app.shutdown.complete")

    return lifespan


__all__ = ["create_application_lifespan", "ensure_runtime_dirs"]
