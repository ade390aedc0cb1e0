"""Public schema exports."""

from .google import (
    CalendarFetchFailure,
    CalendarListResponse,
    CalendarSelectionUpdate,
    CalendarSummary,
    EventsResponse,
    NormalizedEvent,
    SuccessResponse,
)
from .holidays import FederalHoliday, HolidaysResponse

__all__ = [
    "CalendarFetchFailure",
    "CalendarListResponse",
    "CalendarSelectionUpdate",
    "CalendarSummary",
    "EventsResponse",
    "FederalHoliday",
    "HolidaysResponse",
    "NormalizedEvent",
    "SuccessResponse",
]
