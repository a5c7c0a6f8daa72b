"""Request and response schemas for the submissions API."""

from __future__ import annotations

from pydantic import Field, ValidationInfo, field_validator

from family_events.common.schema import BaseSchema


class PersonPayload(BaseSchema):
    """One person as posted by the registration form; every field is optional here."""

    name: str | None = None
    email: str | None = None
    relation: str | None = None
    occasion_name: str | None = None
    event_description: str | None = None
    date_of_event: str | None = None
    gotra: str | None = None
    nakshatra: str | None = None
    rashi: str | None = None
    tamil_month: str | None = None
    phone: str | None = None
    address: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object, info: ValidationInfo) -> object:
        if value is None:
            return None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return None
            # Email is kept as submitted; only its lookup key is normalized.
            return value if info.field_name == "email" else stripped
        return value

    def is_blank(self) -> bool:
        return all(value is None for value in self.model_dump().values())


class SubmissionRequest(BaseSchema):
    primary: PersonPayload | None = None
    family: list[PersonPayload] = Field(default_factory=list)

    @field_validator("family", mode="before")
    @classmethod
    def _null_family(cls, value: object) -> object:
        return [] if value is None else value


class DeleteRequest(BaseSchema):
    password: str | None = None
    email: str | None = None


class MessageResponse(BaseSchema):
    message: str


class SaveResponse(MessageResponse):
    edit_count: int
    records: int


class DeleteResponse(MessageResponse):
    deleted: int


class EditCountResponse(BaseSchema):
    edit_count: int


__all__ = [
    "DeleteRequest",
    "DeleteResponse",
    "EditCountResponse",
    "MessageResponse",
    "PersonPayload",
    "SaveResponse",
    "SubmissionRequest",
]
