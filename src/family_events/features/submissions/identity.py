"""Identity key derivation and required-field checks."""

from __future__ import annotations

from family_events.common.errors import SubmissionValidationError

from .schemas import PersonPayload

MISSING_PRIMARY_MESSAGE = "Missing required primary data (email or name)"


def normalize_identity_key(email: str | None) -> str:
    """Return the lowercase, trimmed lookup key for ``email``."""

    key = (email or "").strip().lower()
    if not key:
        raise SubmissionValidationError("Email is required")
    return key


def require_primary(primary: PersonPayload | None) -> tuple[PersonPayload, str]:
    """Validate the primary respondent and return it with its identity key.

    Runs before any persistence side effect.
    """

    if primary is None or not primary.email or not primary.name:
        raise SubmissionValidationError(MISSING_PRIMARY_MESSAGE)
    return primary, normalize_identity_key(primary.email)


__all__ = ["MISSING_PRIMARY_MESSAGE", "normalize_identity_key", "require_primary"]
