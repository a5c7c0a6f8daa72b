"""Response schema for the health endpoint."""

from __future__ import annotations

from typing import Literal

from family_events.common.schema import BaseSchema


class HealthCheckResponse(BaseSchema):
    status: Literal["ok"] = "ok"
    storage_backend: str
    timestamp: str


__all__ = ["HealthCheckResponse"]
