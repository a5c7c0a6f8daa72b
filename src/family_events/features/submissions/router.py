"""HTTP routes for event submissions and the admin views."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Path, Query, status
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse, Response

from family_events.common.errors import AdminAuthError

from .dependencies import SettingsDep, SubmissionServiceDep
from .mirror import render_csv
from .query import RecordFilter
from .render import render_admin_page
from .schemas import (
    DeleteRequest,
    DeleteResponse,
    EditCountResponse,
    SaveResponse,
    SubmissionRequest,
)
from .service import check_admin_password

router = APIRouter(tags=["submissions"])

CSV_DOWNLOAD_NAME = "family_event_data.csv"


@router.post(
    "/save",
    response_model=SaveResponse,
    status_code=status.HTTP_200_OK,
    summary="Submit or edit a family's event records",
)
def save_submission(
    payload: Annotated[SubmissionRequest, Body()],
    service: SubmissionServiceDep,
) -> SaveResponse:
    """Store one record per person, primary first.

    Family rows with every field blank are dropped before numbering, so an
    empty form row never becomes a "Family Member N" record.
    """

    result = service.submit(payload)
    return SaveResponse(
        message="Data saved successfully!",
        edit_count=result.edit_count,
        records=result.records,
    )


@router.get(
    "/edit-count/{email}",
    response_model=EditCountResponse,
    summary="Number of accepted submissions for an email",
)
def read_edit_count(
    email: Annotated[str, Path()],
    service: SubmissionServiceDep,
) -> EditCountResponse:
    return EditCountResponse(edit_count=service.edit_count(email))


@router.get("/admin", response_class=HTMLResponse, summary="Admin records table")
def read_admin(
    service: SubmissionServiceDep,
    settings: SettingsDep,
    password: Annotated[str | None, Query()] = None,
    month: Annotated[str | None, Query()] = None,
    year: Annotated[str | None, Query()] = None,
) -> Response:
    try:
        check_admin_password(password, expected=settings.admin_password_value)
    except AdminAuthError as exc:
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    record_filter = RecordFilter.from_query(month, year)
    records = service.list_for_admin(record_filter)
    return HTMLResponse(
        render_admin_page(records, record_filter=record_filter, password=password or "")
    )


@router.post(
    "/delete",
    response_model=DeleteResponse,
    summary="Delete every record of an email and reset its edit count",
)
def delete_submission(
    payload: Annotated[DeleteRequest, Body()],
    service: SubmissionServiceDep,
    settings: SettingsDep,
) -> DeleteResponse:
    check_admin_password(payload.password, expected=settings.admin_password_value)
    removed = service.delete_identity(payload.email)
    return DeleteResponse(message="Data deleted successfully!", deleted=removed)


@router.get("/download-csv", summary="Download the CSV backup")
def download_csv(
    service: SubmissionServiceDep,
    settings: SettingsDep,
    password: Annotated[str | None, Query()] = None,
) -> Response:
    check_admin_password(password, expected=settings.admin_password_value)
    path = service.mirror.path
    if not path.is_file():
        return Response(
            content=render_csv([]),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{CSV_DOWNLOAD_NAME}"'},
        )
    return FileResponse(path, media_type="text/csv", filename=CSV_DOWNLOAD_NAME)


__all__ = ["router"]
