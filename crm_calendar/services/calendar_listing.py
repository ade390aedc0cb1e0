"""List the user's Google calendars and manage which of them are synced."""

from __future__ import annotations

import logging
from typing import List

from crm_calendar.clients import GoogleCalendarClient
from crm_calendar.schemas import CalendarSummary
from crm_calendar.services.calendar_selections import SelectionStore
from crm_calendar.services.google_tokens import GoogleTokenService

logger = logging.getLogger(__name__)


class CalendarListingService:
    def __init__(
        self,
        *,
        token_service: GoogleTokenService,
        calendar_client: GoogleCalendarClient,
        selection_store: SelectionStore,
    ) -> None:
        self._tokens = token_service
        self._calendar = calendar_client
        self._selections = selection_store

    async def list_calendars(self, *, user_id: str) -> List[CalendarSummary]:
        """
        Return every calendar on the user's Google account, in Google's order,
        flagged with whether it is currently synced.

        Propagates ``OAuthTokenNotFoundError``, ``TokenRefreshError`` and
        ``CalendarProviderError``.
        """
        credentials = await self._tokens.get_credentials(user_id=user_id)
        items = await self._calendar.list_calendars(credentials=credentials)

        selected_ids = {
            selection.calendar_id
            for selection in self._selections.list(user_id, selected_only=True)
        }
        return [
            CalendarSummary(
                id=item["id"],
                name=item.get("summary") or item["id"],
                description=item.get("description"),
                primary=bool(item.get("primary", False)),
                selected=item["id"] in selected_ids,
            )
            for item in items
            if item.get("id")
        ]

    def set_selected(
        self,
        *,
        user_id: str,
        calendar_id: str,
        calendar_name: str,
        selected: bool,
    ) -> None:
        if selected:
            self._selections.upsert(
                user_id, calendar_id=calendar_id, calendar_name=calendar_name or calendar_id
            )
            logger.info("User %s enabled sync for calendar %s", user_id, calendar_id)
        else:
            self._selections.delete(user_id, calendar_id=calendar_id)
            logger.info("User %s disabled sync for calendar %s", user_id, calendar_id)


__all__ = ["CalendarListingService"]
