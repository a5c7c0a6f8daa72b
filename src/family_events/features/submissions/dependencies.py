"""Request-scoped accessors for the submissions feature."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from family_events.settings import Settings

from .service import SubmissionService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_submission_service(request: Request) -> SubmissionService:
    service = getattr(request.app.state, "submission_service", None)
    if service is None:
        raise RuntimeError("Submission service is not initialised; was the lifespan run?")
    return service


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
SubmissionServiceDep = Annotated[SubmissionService, Depends(get_submission_service)]


__all__ = [
    "SettingsDep",
    "SubmissionServiceDep",
    "get_app_settings",
    "get_submission_service",
]
