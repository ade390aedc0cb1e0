"""
Domain models for OAuth token and calendar selection persistence.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenRecord(BaseModel):
    """A user's Google Calendar credentials, decrypted."""

    user_id: str
    access_token: str
    refresh_token: str
    token_expiry: datetime = Field(..., description="UTC instant the access token expires.")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def is_expired(self, *, now: Optional[datetime] = None, leeway_seconds: int = 0) -> bool:
        expiry = self.token_expiry
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        current = (now or _utcnow()).astimezone(timezone.utc)
        return expiry.astimezone(timezone.utc).timestamp() <= current.timestamp() + leeway_seconds


class CalendarSelection(BaseModel):
    """Whether one of the user's Google calendars is included in sync."""

    user_id: str
    calendar_id: str
    calendar_name: str
    is_selected: bool = True
    updated_at: datetime = Field(default_factory=_utcnow)


__all__ = ["CalendarSelection", "TokenRecord"]
