"""Error taxonomy and FastAPI exception handlers.

Every domain failure derives from :class:`FamilyEventsError`, carries its HTTP
status, and is rendered as ``{"message": ...}`` by the handlers registered in
:func:`register_exception_handlers`.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from .logging import log_context

_ERRORS_LOGGER = logging.getLogger("family_events.errors")


class FamilyEventsError(Exception):
    """Base class for failures that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SubmissionValidationError(FamilyEventsError):
    """Raised when required submission or query fields are missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class QuotaExceededError(FamilyEventsError):
    """Raised when an identity has used up its edit allowance."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, *, email_key: str, limit: int) -> None:
        super().__init__(f"Edit limit of {limit} reached")
        self.email_key = email_key
        self.limit = limit


class AdminAuthError(FamilyEventsError):
    """Raised when the shared admin password does not match."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self) -> None:
        super().__init__("Unauthorized")


class StorageError(FamilyEventsError):
    """Raised when the ledger, the submission store or the mirror cannot be read or written."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def family_events_error_handler(request: Request, exc: FamilyEventsError) -> JSONResponse:
    if exc.status_code >= 500:
        _ERRORS_LOGGER.error(
            "request.storage_failure",
            exc_info=exc,
            extra=log_context(
                path=str(request.url.path),
                method=request.method,
                exception_type=type(exc).__name__,
                detail=exc.message,
            ),
        )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    _ERRORS_LOGGER.info(
        "request.invalid",
        extra=log_context(path=str(request.url.path), error_count=len(errors)),
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request", "errors": errors},
    )


def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: opaque 500 body, full stack trace in the log."""

    _ERRORS_LOGGER.exception(
        "unhandled_exception",
        exc_info=exc,
        extra=log_context(
            path=str(request.url.path),
            method=request.method,
            exception_type=type(exc).__name__,
        ),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FamilyEventsError, family_events_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, request_validation_exception_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "AdminAuthError",
    "FamilyEventsError",
    "QuotaExceededError",
    "StorageError",
    "SubmissionValidationError",
    "register_exception_handlers",
]
