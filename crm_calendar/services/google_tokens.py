"""
Helpers for storing, retrieving and refreshing Google OAuth tokens.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from google.oauth2.credentials import Credentials

from crm_calendar.clients import GoogleOAuthClient, RecordStore
from crm_calendar.clients.google_auth import OAuthTokenNotFoundError
from crm_calendar.core.config import GoogleSettings, OAuthSettings
from crm_calendar.models.oauth import TokenRecord
from crm_calendar.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

TOKEN_SORT_KEY = "oauth#google"


def user_partition_key(user_id: str) -> str:
    return f"user#{user_id}"


class TokenRefreshError(Exception):
    """Raised when an expired access token cannot be refreshed."""


class TokenStore:
    """Per-user persistence of the Google token pair, encrypted at rest."""

    def __init__(self, store: RecordStore, token_cipher: TokenCipherService) -> None:
        self._store = store
        self._cipher = token_cipher

    def _get_raw(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._store.get_item(
            partition_key=user_partition_key(user_id), sort_key=TOKEN_SORT_KEY
        )

    def get(self, user_id: str) -> Optional[TokenRecord]:
        """Return the user's token record, or ``None`` when not connected."""
        record = self._get_raw(user_id)
        if not record:
            return None

        encrypted_access_token = record.get("access_token_encrypted")
        encrypted_refresh_token = record.get("refresh_token_encrypted")
        token_expiry = record.get("token_expiry")
        if not encrypted_access_token or not encrypted_refresh_token or not token_expiry:
            logger.warning("Stored Google token for user %s is incomplete; ignoring it", user_id)
            return None

        try:
            access_token = self._cipher.decrypt(encrypted_access_token)
            refresh_token = self._cipher.decrypt(encrypted_refresh_token)
        except ValueError:
            # Written under an encryption secret that is no longer configured.
            logger.warning(
                "Stored Google token for user %s cannot be decrypted; ignoring it", user_id
            )
            return None

        return TokenRecord(
            user_id=user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            token_expiry=datetime.fromisoformat(token_expiry),
            created_at=datetime.fromisoformat(record.get("created_at") or token_expiry),
            updated_at=datetime.fromisoformat(record.get("updated_at") or token_expiry),
        )

    def upsert(
        self,
        user_id: str,
        *,
        access_token: str,
        refresh_token: str,
        token_expiry: datetime,
    ) -> None:
        """Create or replace the user's token record."""
        now = datetime.now(timezone.utc)
        existing = self._get_raw(user_id)
        created_at = existing.get("created_at") if existing else None
        self._store.put_item(
            {
                "pk": user_partition_key(user_id),
                "sk": TOKEN_SORT_KEY,
                "user_id": user_id,
                "provider": "google",
                "access_token_encrypted": self._cipher.encrypt(access_token),
                "refresh_token_encrypted": self._cipher.encrypt(refresh_token),
                "token_expiry": _to_utc(token_expiry).isoformat(),
                "created_at": created_at or now.isoformat(),
                "updated_at": now.isoformat(),
            }
        )

    def update(self, user_id: str, *, access_token: str, token_expiry: datetime) -> None:
        """Store a refreshed access token, leaving the refresh token untouched."""
        record = self._get_raw(user_id)
        if not record:
            logger.info("Token record for user %s vanished before refresh was stored", user_id)
            return
        record["access_token_encrypted"] = self._cipher.encrypt(access_token)
        record["token_expiry"] = _to_utc(token_expiry).isoformat()
        record["updated_at"] = datetime.now(timezone.utc).isoformat()
        self._store.put_item(record)

    def delete(self, user_id: str) -> None:
        self._store.delete_item(
            partition_key=user_partition_key(user_id), sort_key=TOKEN_SORT_KEY
        )


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class GoogleTokenService:
    """Resolves usable Google credentials, refreshing expired access tokens."""

    def __init__(
        self,
        token_store: TokenStore,
        oauth_client: GoogleOAuthClient,
        google_settings: GoogleSettings,
        oauth_settings: OAuthSettings,
    ) -> None:
        self._tokens = token_store
        self._oauth = oauth_client
        self._google = google_settings
        self._oauth_settings = oauth_settings

    async def get_credentials(self, *, user_id: str) -> Credentials:
        """
        Retrieve credentials for a user, refreshing the access token when expired.

        Raises ``OAuthTokenNotFoundError`` when the user never connected and
        ``TokenRefreshError`` when Google refuses the stored refresh token. A
        failed refresh leaves the stored record as it was.
        """
        record = self._tokens.get(user_id)
        if record is None:
            raise OAuthTokenNotFoundError(f"No OAuth token stored for user {user_id}.")

        access_token = record.access_token
        if record.is_expired(leeway_seconds=self._oauth_settings.refresh_leeway_seconds):
            refreshed_at = datetime.now(timezone.utc)
            refreshed = await self._oauth.refresh_access_token(record.refresh_token)
            if refreshed is None:
                logger.warning("Could not refresh Google access token for user %s", user_id)
                raise TokenRefreshError("Failed to refresh token")

            access_token, expires_in = refreshed
            self._tokens.update(
                user_id,
                access_token=access_token,
                token_expiry=refreshed_at + timedelta(seconds=expires_in),
            )
            logger.info("Refreshed Google access token for user %s", user_id)

        return Credentials(
            token=access_token,
            refresh_token=record.refresh_token,
            token_uri=GoogleOAuthClient.TOKEN_URL,
            client_id=self._google.client_id,
            client_secret=self._google.client_secret,
            scopes=list(self._google.scopes),
        )


__all__ = [
    "GoogleTokenService",
    "TOKEN_SORT_KEY",
    "TokenRefreshError",
    "TokenStore",
    "user_partition_key",
]
