"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter, status

from family_events.common.time import isoformat_z, utc_now
from family_events.features.submissions.dependencies import SettingsDep

from .schemas import HealthCheckResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Service health status",
)
def read_health(settings: SettingsDep) -> HealthCheckResponse:
    return HealthCheckResponse(
        storage_backend=settings.storage_backend,
        timestamp=isoformat_z(utc_now()),
    )


__all__ = ["router"]
