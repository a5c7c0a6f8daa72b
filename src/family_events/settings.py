"""Family events settings (conventional Pydantic v2)."""

from __future__ import annotations

import json
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, TypeVar

from pydantic import AliasChoices, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from family_events import __version__

# ---- Defaults ---------------------------------------------------------------

MODULE_DIR = Path(__file__).resolve().parent
DEFAULT_DATA_DIR = Path("data")
DEFAULT_STATIC_DIR = MODULE_DIR / "web" / "static"
DEFAULT_MIRROR_FILENAME = "family_event_data.csv"
DEFAULT_LEDGER_FILENAME = "edit_counts.json"
DEFAULT_DB_FILENAME = "family_events.sqlite"
DEFAULT_MAX_EDITS = 3

ALLOWED_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
ALLOWED_LOG_FORMATS = frozenset({"console", "json"})


T = TypeVar("T")


# ---- Helpers ----------------------------------------------------------------


def family_events_settings_config() -> SettingsConfigDict:
    """Return the standard ``BaseSettings`` config dict."""

    return SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FAMILY_EVENTS_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def create_settings_accessors(
    settings_type: type[T],
) -> tuple[Callable[[], T], Callable[[], T]]:
    """Create ``get_settings`` and ``reload_settings`` helpers for a settings class."""

    @lru_cache(maxsize=1)
    def _build() -> T:
        return settings_type()

    def get_settings() -> T:
        return _build()

    def reload_settings() -> T:
        _build.cache_clear()
        return _build()

    return get_settings, reload_settings


def normalize_log_format(value: str, *, env_var: str = "FAMILY_EVENTS_LOG_FORMAT") -> str:
    normalized = value.strip().lower()
    if normalized not in ALLOWED_LOG_FORMATS:
        allowed = ", ".join(sorted(ALLOWED_LOG_FORMATS))
        raise ValueError(f"{env_var} must be one of: {allowed}.")
    return normalized


def normalize_log_level(value: str | None, *, env_var: str) -> str | None:
    if value is None:
        return None
    normalized = value.strip().upper()
    if normalized not in ALLOWED_LOG_LEVELS:
        allowed = ", ".join(sorted(ALLOWED_LOG_LEVELS))
        raise ValueError(f"{env_var} must be one of: {allowed}.")
    return normalized


# ---- Settings ---------------------------------------------------------------


class Settings(BaseSettings):
    """Service settings loaded from FAMILY_EVENTS_* environment variables."""

    model_config = family_events_settings_config()

    # Core
    app_name: str = "Family Events API"
    app_version: str = __version__
    log_format: str = "console"
    log_level: str = "INFO"
    database_log_level: str | None = None
    access_log_enabled: bool = True

    # Server
    host: str = "0.0.0.0"
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("FAMILY_EVENTS_PORT", "PORT"),
    )
    server_cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)
    static_dir: Path = Field(default=DEFAULT_STATIC_DIR)

    # Admin
    admin_password: SecretStr = Field(
        ...,
        validation_alias=AliasChoices("FAMILY_EVENTS_ADMIN_PASSWORD", "ADMIN_PASSWORD"),
    )

    # Storage
    data_dir: Path = Field(default=DEFAULT_DATA_DIR, validate_default=True)
    mirror_filename: str = DEFAULT_MIRROR_FILENAME
    ledger_filename: str = DEFAULT_LEDGER_FILENAME
    storage_backend: Literal["csv", "database"] = "csv"
    database_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("FAMILY_EVENTS_DATABASE_URL", "DATABASE_URL"),
    )
    database_echo: bool = False

    # Submissions
    max_edits: int = Field(DEFAULT_MAX_EDITS, ge=1)
    family_member_limit: int | None = Field(default=None, ge=0)

    # ---- Validators ----

    @field_validator("server_cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: object) -> object:
        if value is None:
            return value
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                except json.JSONDecodeError:
                    parsed = None
                if isinstance(parsed, list):
                    return parsed
            return [item.strip() for item in raw.split(",") if item.strip()]
        if isinstance(value, tuple):
            return list(value)
        return value

    @field_validator("data_dir", mode="before")
    @classmethod
    def _resolve_data_dir(cls, value: object) -> object:
        if value is None:
            return DEFAULT_DATA_DIR.resolve()
        return Path(value).expanduser().resolve()

    @field_validator("storage_backend", mode="before")
    @classmethod
    def _normalize_storage_backend(cls, value: object) -> object:
        if value is None:
            return "csv"
        return str(value).strip().lower()

    @model_validator(mode="after")
    def _finalize(self) -> Settings:
        self.log_format = normalize_log_format(self.log_format)

        normalized_log_level = normalize_log_level(
            self.log_level, env_var="FAMILY_EVENTS_LOG_LEVEL"
        )
        if normalized_log_level is None:
            raise ValueError("FAMILY_EVENTS_LOG_LEVEL must not be empty.")
        self.log_level = normalized_log_level
        self.database_log_level = normalize_log_level(
            self.database_log_level,
            env_var="FAMILY_EVENTS_DATABASE_LOG_LEVEL",
        )

        if not self.admin_password.get_secret_value().strip():
            raise ValueError("FAMILY_EVENTS_ADMIN_PASSWORD must not be blank.")

        for name in ("mirror_filename", "ledger_filename"):
            filename = getattr(self, name)
            if not filename or Path(filename).name != filename:
                raise ValueError(f"{name} must be a bare file name, got {filename!r}.")
        return self

    # ---- Convenience ----

    @property
    def mirror_path(self) -> Path:
        return self.data_dir / self.mirror_filename

    @property
    def ledger_path(self) -> Path:
        return self.data_dir / self.ledger_filename

    @property
    def effective_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / DEFAULT_DB_FILENAME}"

    @property
    def admin_password_value(self) -> str:
        return self.admin_password.get_secret_value()


get_settings, reload_settings = create_settings_accessors(Settings)


__all__ = [
    "DEFAULT_LEDGER_FILENAME",
    "DEFAULT_MAX_EDITS",
    "DEFAULT_MIRROR_FILENAME",
    "Settings",
    "get_settings",
    "normalize_log_format",
    "normalize_log_level",
    "reload_settings",
]
