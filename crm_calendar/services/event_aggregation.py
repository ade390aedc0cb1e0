"""
Merge events from every calendar a user syncs into one normalized list.

Each selected calendar is fetched independently and concurrently. A calendar
that fails contributes a ``CalendarFetchFailure`` instead of events, so one
broken calendar never blanks the dashboard.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from google.oauth2.credentials import Credentials

from crm_calendar.clients import CalendarProviderError, GoogleCalendarClient
from crm_calendar.clients.google_auth import OAuthTokenNotFoundError
from crm_calendar.models.oauth import CalendarSelection
from crm_calendar.schemas import CalendarFetchFailure, EventsResponse, NormalizedEvent
from crm_calendar.services.calendar_selections import SelectionStore
from crm_calendar.services.google_tokens import GoogleTokenService

logger = logging.getLogger(__name__)

UNTITLED_EVENT = "(No title)"
_END_OF_DAY = time(23, 59, 59)


def _rfc3339_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def day_window(start: date, end: date, tz: ZoneInfo) -> Tuple[str, str]:
    """Return ``(timeMin, timeMax)`` covering ``start`` 00:00:00 to ``end`` 23:59:59 in ``tz``."""
    window_start = datetime.combine(start, time.min, tzinfo=tz)
    window_end = datetime.combine(end, _END_OF_DAY, tzinfo=tz)
    return _rfc3339_utc(window_start), _rfc3339_utc(window_end)


def normalize_event(item: Dict[str, Any], selection: CalendarSelection) -> NormalizedEvent:
    start = item.get("start") or {}
    end = item.get("end") or {}
    attendees = [
        attendee["email"]
        for attendee in item.get("attendees") or []
        if isinstance(attendee, dict) and attendee.get("email")
    ]
    return NormalizedEvent(
        id=item.get("id", ""),
        title=item.get("summary") or UNTITLED_EVENT,
        description=item.get("description"),
        start=start.get("dateTime") or start.get("date"),
        end=end.get("dateTime") or end.get("date"),
        all_day=not start.get("dateTime"),
        calendar_name=selection.calendar_name,
        calendar_id=selection.calendar_id,
        location=item.get("location"),
        attendees=attendees,
    )


@dataclass
class CalendarFetchResult:
    """Outcome of fetching one calendar: events on success, a reason on failure."""

    selection: CalendarSelection
    events: List[NormalizedEvent] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EventAggregationService:
    def __init__(
        self,
        *,
        token_service: GoogleTokenService,
        calendar_client: GoogleCalendarClient,
        selection_store: SelectionStore,
        timezone_name: str,
        max_concurrency: int = 4,
    ) -> None:
        self._tokens = token_service
        self._calendar = calendar_client
        self._selections = selection_store
        self._tz = ZoneInfo(timezone_name)
        self._max_concurrency = max_concurrency

    async def fetch_events(self, *, user_id: str, start: date, end: date) -> EventsResponse:
        """
        Collect events between ``start`` and ``end`` (inclusive calendar days).

        Returns an empty response when the user is not connected or syncs no
        calendars. Propagates ``TokenRefreshError``.
        """
        try:
            credentials = await self._tokens.get_credentials(user_id=user_id)
        except OAuthTokenNotFoundError:
            return EventsResponse()

        selections = self._selections.list(user_id, selected_only=True)
        if not selections:
            return EventsResponse()

        time_min, time_max = day_window(start, end, self._tz)
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(selection: CalendarSelection) -> CalendarFetchResult:
            async with semaphore:
                return await self._fetch_calendar(
                    credentials=credentials,
                    selection=selection,
                    time_min=time_min,
                    time_max=time_max,
                )

        results = await asyncio.gather(*(_bounded(selection) for selection in selections))
        return self._merge(results)

    async def _fetch_calendar(
        self,
        *,
        credentials: Credentials,
        selection: CalendarSelection,
        time_min: str,
        time_max: str,
    ) -> CalendarFetchResult:
        try:
            items = await self._calendar.list_events(
                credentials=credentials,
                calendar_id=selection.calendar_id,
                time_min=time_min,
                time_max=time_max,
            )
        except CalendarProviderError as exc:
            logger.error(
                "Failed to fetch events for calendar %s: %s", selection.calendar_id, exc
            )
            return CalendarFetchResult(selection=selection, error=str(exc))
        except Exception as exc:
            # One calendar must never fail the whole aggregation.
            logger.exception("Unexpected error fetching calendar %s", selection.calendar_id)
            return CalendarFetchResult(selection=selection, error=f"Unexpected error: {exc}")

        try:
            events = [
                normalize_event(item, selection) for item in items if isinstance(item, dict)
            ]
        except (ValueError, TypeError, AttributeError) as exc:
            logger.exception("Could not normalize events for calendar %s", selection.calendar_id)
            return CalendarFetchResult(selection=selection, error=f"Malformed event data: {exc}")
        return CalendarFetchResult(selection=selection, events=events)

    @staticmethod
    def _merge(results: List[CalendarFetchResult]) -> EventsResponse:
        response = EventsResponse()
        for result in results:
            if result.ok:
                response.events.extend(result.events)
            else:
                response.failures.append(
                    CalendarFetchFailure(
                        calendar_id=result.selection.calendar_id,
                        calendar_name=result.selection.calendar_name,
                        reason=result.error or "unknown error",
                    )
                )
        return response


__all__ = [
    "CalendarFetchResult",
    "EventAggregationService",
    "UNTITLED_EVENT",
    "day_window",
    "normalize_event",
]
