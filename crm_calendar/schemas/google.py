"""Request and response schemas for the Google Calendar integration."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CalendarSelectionUpdate(_CamelModel):
    """Toggle a calendar in or out of sync."""

    calendar_id: str = Field(..., alias="calendarId", min_length=1)
    calendar_name: str = Field("", alias="calendarName")
    selected: bool


class CalendarSummary(BaseModel):
    """A Google calendar as shown on the settings page."""

    id: str
    name: str
    description: Optional[str] = None
    primary: bool = False
    selected: bool = False


class CalendarListResponse(BaseModel):
    calendars: List[CalendarSummary]


class NormalizedEvent(_CamelModel):
    """Provider-agnostic event shape rendered by the dashboard."""

    id: str
    title: str
    description: Optional[str] = None
    start: Optional[str] = Field(None, description="YYYY-MM-DD for all-day events, else RFC 3339.")
    end: Optional[str] = None
    all_day: bool = Field(..., alias="allDay")
    calendar_name: str = Field(..., alias="calendarName")
    calendar_id: str = Field(..., alias="calendarId")
    source: Literal["external"] = "external"
    location: Optional[str] = None
    attendees: List[str] = Field(default_factory=list)


class CalendarFetchFailure(_CamelModel):
    """A selected calendar whose events could not be fetched."""

    calendar_id: str = Field(..., alias="calendarId")
    calendar_name: str = Field(..., alias="calendarName")
    reason: str


class EventsResponse(BaseModel):
    events: List[NormalizedEvent] = Field(default_factory=list)
    failures: List[CalendarFetchFailure] = Field(default_factory=list)


class SuccessResponse(BaseModel):
    success: bool = True


__all__ = [
    "CalendarFetchFailure",
    "CalendarListResponse",
    "CalendarSelectionUpdate",
    "CalendarSummary",
    "EventsResponse",
    "NormalizedEvent",
    "SuccessResponse",
]
