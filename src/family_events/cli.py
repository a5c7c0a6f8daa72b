"""`family-events` command implementations."""

from __future__ import annotations

import typer
import uvicorn
from pydantic import ValidationError

from family_events.common.errors import FamilyEventsError
from family_events.common.logging import setup_logging
from family_events.db import open_database
from family_events.features.submissions.service import (
    SubmissionService,
    build_submission_service,
)
from family_events.settings import Settings

ASGI_APP = "family_events.asgi:app"

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Family events CLI (serve, export-csv, reset-edits, show-settings).",
)


def _load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        typer.echo(f"error: invalid configuration\n{exc}", err=True)
        raise typer.Exit(code=1) from None


def _open_service(settings: Settings) -> SubmissionService:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    session_factory = None
    if settings.storage_backend == "database":
        _, session_factory = open_database(settings)
    return build_submission_service(settings, session_factory=session_factory)


def run_serve(*, host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    settings = _load_settings()
    host = host or settings.host
    port = port or settings.port

    typer.echo(f"Family events server: http://{host}:{port}")
    uvicorn.run(
        ASGI_APP,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=settings.access_log_enabled,
        log_config=None,
    )


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command(name="serve", help="Run the HTTP server.")
def serve(
    host: str | None = typer.Option(None, "--host", help="Interface to bind."),
    port: int | None = typer.Option(None, "--port", help="Port to bind.", min=1, max=65535),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes."),
) -> None:
    run_serve(host=host, port=port, reload=reload)


@app.command(name="export-csv", help="Rewrite the CSV backup from the active store.")
def export_csv() -> None:
    settings = _load_settings()
    setup_logging(settings)
    try:
        count = _open_service(settings).export_mirror()
    except FamilyEventsError as exc:
        typer.echo(f"error: {exc.message}", err=True)
        raise typer.Exit(code=1) from None
    typer.echo(f"exported {count} record(s) to {settings.mirror_path}")


@app.command(name="reset-edits", help="Clear the edit count of one email.")
def reset_edits(
    email: str = typer.Argument(..., help="Email whose edit count is reset."),
) -> None:
    settings = _load_settings()
    setup_logging(settings)
    try:
        existed = _open_service(settings).reset_edits(email)
    except FamilyEventsError as exc:
        typer.echo(f"error: {exc.message}", err=True)
        raise typer.Exit(code=1) from None
    if existed:
        typer.echo(f"reset edit count for {email.strip().lower()}")
    else:
        typer.echo(f"no edit count recorded for {email.strip().lower()}")


@app.command(name="show-settings", help="Print the effective settings (secrets masked).")
def show_settings() -> None:
    settings = _load_settings()
    typer.echo(settings.model_dump_json(indent=2))


__all__ = ["app", "run_serve"]
