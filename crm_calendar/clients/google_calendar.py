"""Google Calendar client wrapper for calendar lists and event windows."""

from __future__ import annotations

import asyncio
import http.client
from typing import Any, Callable, Dict, List, Optional

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

ServiceFactory = Callable[[Credentials], Any]

# Google caps events.list pages at 2500 items; calendarList at 250.
_EVENTS_PAGE_SIZE = 2500
_CALENDAR_LIST_PAGE_SIZE = 250


class CalendarProviderError(Exception):
    """Raised when Google Calendar fails, times out, or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _build_calendar_service(credentials: Credentials) -> Any:
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


def _describe_http_error(exc: HttpError) -> str:
    status_code = getattr(exc.resp, "status", None)
    reason = exc.reason if hasattr(exc, "reason") else str(exc)
    return f"Google Calendar returned HTTP {status_code}: {reason}"


class GoogleCalendarClient:
    """Read calendars and events on behalf of a user."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 8.0,
        service_factory: Optional[ServiceFactory] = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._service_factory = service_factory or _build_calendar_service

    async def _run(self, operation: Callable[[], Any], *, description: str) -> Any:
        try:
            return await asyncio.wait_for(asyncio.to_thread(operation), self._timeout)
        except asyncio.TimeoutError as exc:
            raise CalendarProviderError(
                f"Timed out after {self._timeout:g}s while {description}"
            ) from exc
        except HttpError as exc:
            raise CalendarProviderError(
                _describe_http_error(exc),
                status_code=getattr(exc.resp, "status", None),
            ) from exc
        except (
            GoogleAuthError,
            httplib2.HttpLib2Error,
            http.client.HTTPException,
            OSError,
            ValueError,
        ) as exc:
            raise CalendarProviderError(f"Failed while {description}: {exc}") from exc

    async def list_calendars(self, *, credentials: Credentials) -> List[Dict[str, Any]]:
        """Return the raw calendarList items visible to the user, in provider order."""

        def _execute_list() -> List[Dict[str, Any]]:
            service = self._service_factory(credentials)
            items: List[Dict[str, Any]] = []
            page_token: Optional[str] = None
            while True:
                response = (
                    service.calendarList()
                    .list(maxResults=_CALENDAR_LIST_PAGE_SIZE, pageToken=page_token)
                    .execute()
                )
                items.extend(response.get("items", []))
                page_token = response.get("nextPageToken")
                if not page_token:
                    return items

        return await self._run(_execute_list, description="listing calendars")

    async def list_events(
        self,
        *,
        credentials: Credentials,
        calendar_id: str,
        time_min: str,
        time_max: str,
    ) -> List[Dict[str, Any]]:
        """Return expanded single events in ``[time_min, time_max]`` ordered by start."""

        def _execute_events() -> List[Dict[str, Any]]:
            service = self._service_factory(credentials)
            items: List[Dict[str, Any]] = []
            page_token: Optional[str] = None
            while True:
                response = (
                    service.events()
                    .list(
                        calendarId=calendar_id,
                        timeMin=time_min,
                        timeMax=time_max,
                        singleEvents=True,
                        orderBy="startTime",
                        maxResults=_EVENTS_PAGE_SIZE,
                        pageToken=page_token,
                    )
                    .execute()
                )
                items.extend(response.get("items", []))
                page_token = response.get("nextPageToken")
                if not page_token:
                    return items

        return await self._run(
            _execute_events, description=f"fetching events for calendar {calendar_id}"
        )


__all__ = ["CalendarProviderError", "GoogleCalendarClient"]
