try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
import http.client
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import httpx
import pytest

from crm_calendar import dependencies
from crm_calendar.clients import CalendarProviderError, GoogleCalendarClient
from crm_calendar.core.config import get_settings
from crm_calendar.core.security import SessionTokenVerifier
from crm_calendar.main import app
from crm_calendar.services import EventAggregationService, GoogleTokenService
from crm_calendar.services.event_aggregation import UNTITLED_EVENT, day_window

TIMED_EVENT = {
    "id": "evt-1",
    "summary": "Pipeline review",
    "description": "Weekly",
    "start": {"dateTime": "2024-07-01T09:00:00-05:00"},
    "end": {"dateTime": "2024-07-01T10:00:00-05:00"},
    "location": "Room 4",
    "attendees": [{"email": "a@example.com"}, {"displayName": "No email"}],
}
ALL_DAY_EVENT = {
    "id": "evt-2",
    "start": {"date": "2024-07-04"},
    "end": {"date": "2024-07-05"},
}


class DummyOAuthClient:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def refresh_access_token(self, refresh_token: str):
        self.calls.append(refresh_token)
        return ("refreshed", 3600)


class FakeCalendarClient:
    def __init__(self, events_by_calendar=None, failing=(), delay: float = 0.0) -> None:
        self.events_by_calendar = events_by_calendar or {}
        self.failing = set(failing)
        self.delay = delay
        self.calls: list[tuple[str, str, str]] = []
        self.tokens: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def list_events(self, *, credentials, calendar_id, time_min, time_max):
        self.calls.append((calendar_id, time_min, time_max))
        self.tokens.append(credentials.token)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if calendar_id in self.failing:
                raise CalendarProviderError(
                    "Google Calendar returned HTTP 500: backendError", status_code=500
                )
            return list(self.events_by_calendar.get(calendar_id, []))
        finally:
            self.in_flight -= 1


def _connect(
    token_store, user_id: str = "user-1", *, expires_in: timedelta = timedelta(hours=1)
) -> None:
    token_store.upsert(
        user_id,
        access_token="access-token",
        refresh_token="refresh-token",
        token_expiry=datetime.now(timezone.utc) + expires_in,
    )


@pytest.fixture()
def build_service(token_store, selection_store, google_settings, oauth_settings):
    def _build(
        calendar_client, *, max_concurrency: int = 4, oauth_client=None
    ) -> EventAggregationService:
        token_service = GoogleTokenService(
            token_store=token_store,
            oauth_client=oauth_client or DummyOAuthClient(),
            google_settings=google_settings,
            oauth_settings=oauth_settings,
        )
        return EventAggregationService(
            token_service=token_service,
            calendar_client=calendar_client,
            selection_store=selection_store,
            timezone_name="America/Chicago",
            max_concurrency=max_concurrency,
        )

    return _build


def test_day_window_spans_whole_business_days() -> None:
    tz = ZoneInfo("America/Chicago")

    assert day_window(date(2024, 1, 15), date(2024, 1, 15), tz) == (
        "2024-01-15T06:00:00Z",
        "2024-01-16T05:59:59Z",
    )
    # Daylight saving time shifts the UTC offset to -05:00.
    assert day_window(date(2024, 7, 1), date(2024, 7, 7), tz) == (
        "2024-07-01T05:00:00Z",
        "2024-07-08T04:59:59Z",
    )


@pytest.mark.asyncio
async def test_not_connected_returns_empty(build_service) -> None:
    calendar_client = FakeCalendarClient()
    service = build_service(calendar_client)

    response = await service.fetch_events(
        user_id="user-1", start=date(2024, 7, 1), end=date(2024, 7, 1)
    )

    assert response.events == []
    assert response.failures == []
    assert calendar_client.calls == []


@pytest.mark.asyncio
async def test_no_selected_calendars_makes_no_provider_calls(build_service, token_store) -> None:
    _connect(token_store)
    calendar_client = FakeCalendarClient()
    service = build_service(calendar_client)

    response = await service.fetch_events(
        user_id="user-1", start=date(2024, 7, 1), end=date(2024, 7, 1)
    )

    assert response.events == []
    assert calendar_client.calls == []


@pytest.mark.asyncio
async def test_events_are_normalized_and_merged_in_selection_order(
    build_service, token_store, selection_store
) -> None:
    _connect(token_store)
    selection_store.upsert("user-1", calendar_id="work", calendar_name="Work")
    selection_store.upsert("user-1", calendar_id="personal", calendar_name="Personal")
    calendar_client = FakeCalendarClient(
        {"work": [TIMED_EVENT], "personal": [ALL_DAY_EVENT]}
    )
    service = build_service(calendar_client)

    response = await service.fetch_events(
        user_id="user-1", start=date(2024, 7, 1), end=date(2024, 7, 7)
    )

    assert response.failures == []
    timed, all_day = response.events
    assert timed.id == "evt-1"
    assert timed.title == "Pipeline review"
    assert timed.all_day is False
    assert timed.start == "2024-07-01T09:00:00-05:00"
    assert timed.calendar_id == "work"
    assert timed.calendar_name == "Work"
    assert timed.source == "external"
    assert timed.attendees == ["a@example.com"]
    assert timed.location == "Room 4"

    assert all_day.all_day is True
    assert all_day.start == "2024-07-04"
    assert all_day.title == UNTITLED_EVENT
    assert all_day.calendar_name == "Personal"

    assert {call[1:] for call in calendar_client.calls} == {
        ("2024-07-01T05:00:00Z", "2024-07-08T04:59:59Z")
    }


@pytest.mark.asyncio
async def test_one_failing_calendar_does_not_drop_the_others(
    build_service, token_store, selection_store
) -> None:
    _connect(token_store)
    selection_store.upsert("user-1", calendar_id="broken", calendar_name="Broken")
    selection_store.upsert("user-1", calendar_id="work", calendar_name="Work")
    calendar_client = FakeCalendarClient({"work": [TIMED_EVENT]}, failing={"broken"})
    service = build_service(calendar_client)

    response = await service.fetch_events(
        user_id="user-1", start=date(2024, 7, 1), end=date(2024, 7, 1)
    )

    assert [event.id for event in response.events] == ["evt-1"]
    assert len(response.failures) == 1
    failure = response.failures[0]
    assert failure.calendar_id == "broken"
    assert failure.calendar_name == "Broken"
    assert "HTTP 500" in failure.reason


@pytest.mark.asyncio
async def test_fetches_respect_concurrency_limit(
    build_service, token_store, selection_store
) -> None:
    _connect(token_store)
    for index in range(5):
        selection_store.upsert("user-1", calendar_id=f"cal-{index}", calendar_name=f"Cal {index}")
    calendar_client = FakeCalendarClient(delay=0.01)
    service = build_service(calendar_client, max_concurrency=2)

    await service.fetch_events(user_id="user-1", start=date(2024, 7, 1), end=date(2024, 7, 1))

    assert len(calendar_client.calls) == 5
    assert calendar_client.max_in_flight == 2


class _EventsRequest:
    def __init__(self, calendar_id: str) -> None:
        self._calendar_id = calendar_id

    def execute(self):
        if self._calendar_id == "broken":
            raise http.client.IncompleteRead(b"partial")
        return {
            "items": [
                {
                    "id": "e1",
                    "start": {"dateTime": "2024-07-01T09:00:00-05:00"},
                    "end": {"dateTime": "2024-07-01T09:30:00-05:00"},
                }
            ]
        }


class _TruncatingCalendarService:
    """Calendar v3 resource whose "broken" calendar drops the connection mid-body."""

    def events(self):
        return self

    def list(self, *, calendarId, **kwargs):
        return _EventsRequest(calendarId)


@pytest.mark.asyncio
async def test_truncated_provider_response_is_reported_per_calendar(
    build_service, token_store, selection_store
) -> None:
    _connect(token_store)
    selection_store.upsert("user-1", calendar_id="broken", calendar_name="Broken")
    selection_store.upsert("user-1", calendar_id="work", calendar_name="Work")
    calendar_client = GoogleCalendarClient(
        service_factory=lambda credentials: _TruncatingCalendarService()
    )
    service = build_service(calendar_client)

    response = await service.fetch_events(
        user_id="user-1", start=date(2024, 7, 1), end=date(2024, 7, 1)
    )

    assert [event.id for event in response.events] == ["e1"]
    assert [failure.calendar_id for failure in response.failures] == ["broken"]


@pytest.mark.asyncio
async def test_unexpected_client_errors_are_reported_per_calendar(
    build_service, token_store, selection_store
) -> None:
    class ExplodingCalendarClient(FakeCalendarClient):
        async def list_events(self, *, credentials, calendar_id, time_min, time_max):
            if calendar_id == "broken":
                raise RuntimeError("boom")
            return await super().list_events(
                credentials=credentials,
                calendar_id=calendar_id,
                time_min=time_min,
                time_max=time_max,
            )

    _connect(token_store)
    selection_store.upsert("user-1", calendar_id="broken", calendar_name="Broken")
    selection_store.upsert("user-1", calendar_id="work", calendar_name="Work")
    service = build_service(ExplodingCalendarClient({"work": [TIMED_EVENT]}))

    response = await service.fetch_events(
        user_id="user-1", start=date(2024, 7, 1), end=date(2024, 7, 1)
    )

    assert [event.id for event in response.events] == ["evt-1"]
    assert response.failures[0].calendar_id == "broken"
    assert "boom" in response.failures[0].reason


@pytest.mark.asyncio
async def test_expired_token_is_refreshed_once_for_all_calendars(
    build_service, token_store, selection_store
) -> None:
    _connect(token_store, expires_in=-timedelta(minutes=5))
    selection_store.upsert("user-1", calendar_id="work", calendar_name="Work")
    selection_store.upsert("user-1", calendar_id="personal", calendar_name="Personal")
    oauth_client = DummyOAuthClient()
    calendar_client = FakeCalendarClient({"work": [TIMED_EVENT]})
    service = build_service(calendar_client, oauth_client=oauth_client)

    response = await service.fetch_events(
        user_id="user-1", start=date(2024, 7, 1), end=date(2024, 7, 1)
    )

    assert [event.id for event in response.events] == ["evt-1"]
    assert oauth_client.calls == ["refresh-token"]
    assert calendar_client.tokens == ["refreshed", "refreshed"]
    stored = token_store.get("user-1")
    assert stored.access_token == "refreshed"
    assert stored.token_expiry > datetime.now(timezone.utc)


def _auth(user_id: str = "user-1") -> dict[str, str]:
    token = SessionTokenVerifier(get_settings().security.session_secret).issue(user_id)
    return {"authorization": f"Bearer {token}"}


@pytest.fixture()
def events_app(build_service, token_store, selection_store):
    calendar_client = FakeCalendarClient({"work": [TIMED_EVENT, ALL_DAY_EVENT]})
    service = build_service(calendar_client)
    app.dependency_overrides[dependencies.get_event_aggregation_service] = lambda: service
    _connect(token_store)
    selection_store.upsert("user-1", calendar_id="work", calendar_name="Work")
    yield calendar_client
    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.anyio
async def test_events_endpoint_returns_normalized_events(events_app) -> None:
    async with _client() as client:
        response = await client.get(
            "/api/google/events",
            params={"start": "2024-07-01", "end": "2024-07-07"},
            headers=_auth(),
        )

    assert response.status_code == 200
    data = response.json()
    assert data["failures"] == []
    assert [event["id"] for event in data["events"]] == ["evt-1", "evt-2"]
    first = data["events"][0]
    assert first["allDay"] is False
    assert first["calendarName"] == "Work"
    assert first["calendarId"] == "work"
    assert first["source"] == "external"
    assert data["events"][1]["allDay"] is True


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("params", "missing"),
    [
        ({"start": "2024-07-01"}, "end"),
        ({"end": "2024-07-01"}, "start"),
        ({}, "start, end"),
    ],
)
async def test_events_endpoint_requires_both_dates(events_app, params, missing) -> None:
    async with _client() as client:
        response = await client.get("/api/google/events", params=params, headers=_auth())

    assert response.status_code == 400
    assert response.json() == {"error": f"Start and end dates required; missing: {missing}"}
    assert events_app.calls == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    "params",
    [
        {"start": "07/01/2024", "end": "2024-07-02"},
        {"start": "2024-07-05", "end": "2024-07-01"},
    ],
)
async def test_events_endpoint_rejects_bad_ranges(events_app, params) -> None:
    async with _client() as client:
        response = await client.get("/api/google/events", params=params, headers=_auth())

    assert response.status_code == 400
    assert events_app.calls == []
