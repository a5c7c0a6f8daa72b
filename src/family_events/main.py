"""Family events FastAPI application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from .app.lifecycles import create_application_lifespan
from .common.errors import register_exception_handlers
from .common.logging import setup_logging
from .common.middleware import register_middleware
from .features.health.router import router as health_router
from .features.submissions.router import router as submissions_router
from .settings import Settings, get_settings

FORM_PAGE = "family_form.html"
logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the family events FastAPI application."""
    # Settings + logging first so everything else uses the configured root logger.
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        debug=False,
        lifespan=create_application_lifespan(settings=settings),
    )
    app.state.settings = settings

    register_exception_handlers(app)
    register_middleware(app, settings=settings)
    app.include_router(health_router)
    app.include_router(submissions_router)

    # The static mount matches every path, so it goes last.
    if settings.static_dir.is_dir():
        _register_form_route(app, settings)
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
        logger.info("static.mounted", extra={"static_dir": str(settings.static_dir)})
    else:
        logger.warning("static.missing", extra={"static_dir": str(settings.static_dir)})

    return app


def _register_form_route(app: FastAPI, settings: Settings) -> None:
    form_path = settings.static_dir / FORM_PAGE
    if not form_path.is_file():
        return

    @app.get("/", include_in_schema=False)
    def read_form() -> FileResponse:
        return FileResponse(form_path, media_type="text/html")


__all__ = ["FORM_PAGE", "create_app"]
