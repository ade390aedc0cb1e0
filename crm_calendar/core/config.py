"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the calendar services and
the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GOOGLE_CALLBACK_PATH = "/api/google/callback"


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class GoogleSettings(BaseSettings):
    """Configuration required for interacting with Google APIs."""

    model_config = SettingsConfigDict(populate_by_name=True)

    client_id: str = Field(..., alias="GOOGLE_CLIENT_ID")
    client_secret: str = Field(..., alias="GOOGLE_CLIENT_SECRET")
    scope: str = Field(
        "https://www.googleapis.com/auth/calendar.readonly",
        alias="GOOGLE_OAUTH_SCOPE",
        description="Space or comma separated OAuth scopes requested at consent.",
    )

    @property
    def scopes(self) -> tuple[str, ...]:
        return tuple(part for part in self.scope.replace(",", " ").split() if part)


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    state_ttl_seconds: int = Field(900, alias="OAUTH_STATE_TTL")
    refresh_leeway_seconds: int = Field(
        0,
        alias="OAUTH_REFRESH_LEEWAY",
        description="Refresh access tokens this many seconds before they expire.",
    )
    http_timeout_seconds: float = Field(10.0, alias="OAUTH_HTTP_TIMEOUT")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    session_secret: str = Field(
        ...,
        alias="SESSION_SECRET",
        description="Secret shared with the identity provider to verify session tokens.",
    )
    session_cookie_name: str = Field("session", alias="SESSION_COOKIE_NAME")
    token_encryption_secret: Optional[str] = Field(
        None,
        alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    previous_token_encryption_secrets: str = Field(
        "",
        alias="TOKEN_ENCRYPTION_PREVIOUS_SECRETS",
        description="Comma separated retired secrets still accepted for decryption.",
    )

    @property
    def previous_secrets(self) -> tuple[str, ...]:
        return tuple(
            part.strip()
            for part in self.previous_token_encryption_secrets.split(",")
            if part.strip()
        )


class StorageSettings(BaseSettings):
    """Where token and calendar selection records are persisted."""

    model_config = SettingsConfigDict(populate_by_name=True)

    backend: Literal["sqlite", "dynamodb"] = Field("sqlite", alias="STORAGE_BACKEND")
    database_path: str = Field("data/crm_calendar.db", alias="DATABASE_PATH")
    region_name: str = Field("us-east-1", alias="AWS_REGION")
    dynamodb_table_name: Optional[str] = Field(
        None,
        alias="DYNAMODB_TABLE_NAME",
        description="Required when STORAGE_BACKEND is 'dynamodb'.",
    )


class CalendarSettings(BaseSettings):
    """Event aggregation tuning."""

    model_config = SettingsConfigDict(populate_by_name=True)

    timezone: str = Field(
        "America/Chicago",
        alias="APP_TIMEZONE",
        description="Business time zone used to turn calendar dates into day windows.",
    )
    fetch_timeout_seconds: float = Field(8.0, alias="CALENDAR_FETCH_TIMEOUT")
    max_concurrency: int = Field(4, alias="CALENDAR_MAX_CONCURRENCY")

    @field_validator("timezone")
    def _validate_timezone(cls, value: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone: {value}") from exc
        return value

    @field_validator("max_concurrency")
    def _validate_concurrency(cls, value: int) -> int:
        if value < 1:
            raise ValueError("CALENDAR_MAX_CONCURRENCY must be at least 1")
        return value


class HolidaySettings(BaseSettings):
    """Public holiday source for dashboard calendar views."""

    model_config = SettingsConfigDict(populate_by_name=True)

    api_base_url: str = Field(
        "https://date.nager.at/api/v3/publicholidays", alias="HOLIDAY_API_BASE_URL"
    )
    country_code: str = Field("US", alias="HOLIDAY_COUNTRY_CODE")
    cache_ttl_days: int = Field(365, alias="HOLIDAY_CACHE_TTL_DAYS")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="APP_LOG_LEVEL")
    app_base_url: str = Field(
        "http://localhost:8000",
        alias="APP_BASE_URL",
        description="Public origin of the dashboard; used for OAuth redirects.",
    )
    settings_page_path: str = Field("/dashboard/settings", alias="SETTINGS_PAGE_PATH")
    login_page_path: str = Field("/auth/login", alias="LOGIN_PAGE_PATH")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    calendar: CalendarSettings = Field(default_factory=CalendarSettings)
    holidays: HolidaySettings = Field(default_factory=HolidaySettings)

    @field_validator("app_base_url")
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def google_redirect_uri(self) -> str:
        return f"{self.app_base_url}{GOOGLE_CALLBACK_PATH}"

    @property
    def settings_page_url(self) -> str:
        return f"{self.app_base_url}{self.settings_page_path}"

    @property
    def login_page_url(self) -> str:
        return f"{self.app_base_url}{self.login_page_path}"


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "CalendarSettings",
    "GOOGLE_CALLBACK_PATH",
    "GoogleSettings",
    "HolidaySettings",
    "OAuthSettings",
    "SecuritySettings",
    "StorageSettings",
    "get_settings",
]
