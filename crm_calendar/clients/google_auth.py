"""
Google OAuth utilities.

These helpers manage the user authentication flow and token refresh lifecycle.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import httpx

from fastapi import status

from crm_calendar.core.config import GoogleSettings, OAuthSettings
from crm_calendar.core.security import InvalidSignatureError, SignedPayloadEncoder

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


def _token_lifetime(value: Any) -> int:
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return DEFAULT_TOKEN_LIFETIME_SECONDS
    return seconds if seconds > 0 else DEFAULT_TOKEN_LIFETIME_SECONDS


class OAuthStateEncoder(SignedPayloadEncoder):
    """Issue and check the tamper-proof ``state`` parameter of the consent flow."""

    def issue(self, *, user_id: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        return self.encode(
            {
                "nonce": uuid.uuid4().hex,
                "user_id": user_id,
                "issued_at": issued_at.isoformat(),
            }
        )

    def validate(
        self,
        token: str,
        *,
        user_id: str,
        ttl_seconds: int,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Decode ``token`` and check it is fresh and was issued to ``user_id``."""
        state_data = self.decode(token)

        issued_at_raw = state_data.get("issued_at")
        if not issued_at_raw:
            raise InvalidSignatureError("Missing issued_at in state token.")
        try:
            issued_at = datetime.fromisoformat(issued_at_raw)
        except (TypeError, ValueError) as exc:
            raise InvalidSignatureError("Invalid issued_at in state token.") from exc
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)

        current = now or datetime.now(timezone.utc)
        if current - issued_at > timedelta(seconds=ttl_seconds):
            raise InvalidSignatureError("OAuth state token has expired.")

        if state_data.get("user_id") != user_id:
            raise InvalidSignatureError("OAuth state token was issued to another user.")
        return state_data


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""


class OAuthTokenNotFoundError(Exception):
    """Raised when no persisted OAuth token is available for a user."""


class GoogleOAuthClient:
    """Build Google authorization URLs and exchange or refresh tokens."""

    AUTH_BASE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        google_settings: GoogleSettings,
        oauth_settings: OAuthSettings,
        *,
        redirect_uri: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._google = google_settings
        self._oauth = oauth_settings
        self._redirect_uri = redirect_uri
        self._transport = transport

    @property
    def redirect_uri(self) -> str:
        return self._redirect_uri

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._oauth.http_timeout_seconds, transport=self._transport
        )

    def build_authorization_url(self, state: str, access_type: str = "offline") -> str:
        """Construct the Google OAuth consent URL."""
        params = {
            "client_id": self._google.client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": " ".join(self._google.scopes),
            "access_type": access_type,
            # Force consent so Google issues a refresh token on every connect.
            "prompt": "consent",
            "state": state,
        }
        query = urlencode(params)
        return f"{self.AUTH_BASE_URL}?{query}"

    async def exchange_authorization_code(self, code: str) -> Tuple[str, Optional[str], int]:
        """
        Exchange an authorization code for tokens.

        Returns a tuple of (access_token, refresh_token, expires_in_seconds). The
        refresh token is ``None`` when Google does not issue a new one.
        """
        payload = {
            "code": code,
            "client_id": self._google.client_id,
            "client_secret": self._google.client_secret,
            "redirect_uri": self._redirect_uri,
            "grant_type": "authorization_code",
        }

        try:
            async with self._http_client() as client:
                response = await client.post(self.TOKEN_URL, data=payload)
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(f"Token endpoint unreachable: {exc}") from exc

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(response.text)

        try:
            token_payload = response.json()
        except ValueError as exc:
            raise OAuthTokenExchangeError("Token endpoint returned invalid JSON.") from exc

        access_token = token_payload.get("access_token")
        if not access_token:
            raise OAuthTokenExchangeError("Incomplete token payload returned from Google.")

        return (
            access_token,
            token_payload.get("refresh_token"),
            _token_lifetime(token_payload.get("expires_in")),
        )

    async def refresh_access_token(self, refresh_token: str) -> Optional[Tuple[str, int]]:
        """
        Refresh the access token using a stored refresh token.

        Returns ``(access_token, expires_in_seconds)``, or ``None`` when Google
        rejects the refresh or cannot be reached.
        """
        if not refresh_token:
            return None

        payload = {
            "client_id": self._google.client_id,
            "client_secret": self._google.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        try:
            async with self._http_client() as client:
                response = await client.post(self.TOKEN_URL, data=payload)
        except httpx.HTTPError as exc:
            logger.warning("Token refresh request failed: %s", exc)
            return None

        if response.status_code != status.HTTP_200_OK:
            logger.warning("Token refresh rejected with status %s", response.status_code)
            return None

        try:
            token_payload = response.json()
        except ValueError:
            logger.warning("Token refresh returned invalid JSON")
            return None

        access_token = token_payload.get("access_token")
        if not access_token:
            logger.warning("Token refresh response did not include an access token")
            return None

        return access_token, _token_lifetime(token_payload.get("expires_in"))


__all__ = [
    "DEFAULT_TOKEN_LIFETIME_SECONDS",
    "GoogleOAuthClient",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "OAuthTokenNotFoundError",
]
