"""Connect and disconnect a user's Google Calendar account."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from crm_calendar.clients import GoogleOAuthClient
from crm_calendar.clients.google_auth import OAuthTokenExchangeError
from crm_calendar.services.calendar_selections import SelectionStore
from crm_calendar.services.google_tokens import TokenStore

logger = logging.getLogger(__name__)


class GoogleConnectionService:
    def __init__(
        self,
        *,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        selection_store: SelectionStore,
    ) -> None:
        self._oauth = oauth_client
        self._tokens = token_store
        self._selections = selection_store

    async def complete_authorization(self, *, user_id: str, code: str) -> None:
        """
        Exchange an authorization code and store the resulting token pair.

        Google omits the refresh token when the user re-consents without
        ``prompt=consent``; the previously stored one is kept in that case.
        Raises ``OAuthTokenExchangeError`` or ``PersistenceError``.
        """
        issued_at = datetime.now(timezone.utc)
        access_token, refresh_token, expires_in = await self._oauth.exchange_authorization_code(
            code
        )

        if not refresh_token:
            existing = self._tokens.get(user_id)
            if existing is None:
                raise OAuthTokenExchangeError("Google did not return a refresh token.")
            refresh_token = existing.refresh_token

        self._tokens.upsert(
            user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            token_expiry=issued_at + timedelta(seconds=expires_in),
        )
        logger.info("Connected Google Calendar for user %s", user_id)

    def disconnect(self, *, user_id: str) -> None:
        """Forget the user's tokens and every calendar selection."""
        self._tokens.delete(user_id)
        removed = self._selections.delete_all(user_id)
        logger.info(
            "Disconnected Google Calendar for user %s (%d calendar selections removed)",
            user_id,
            removed,
        )


__all__ = ["GoogleConnectionService"]
