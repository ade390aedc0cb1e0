"""Service layer exports."""

from .calendar_listing import CalendarListingService
from .calendar_selections import SelectionStore
from .event_aggregation import CalendarFetchResult, EventAggregationService
from .google_connection import GoogleConnectionService
from .google_tokens import GoogleTokenService, TokenRefreshError, TokenStore
from .holidays import HolidayService, build_holiday_map
from .token_cipher import TokenCipherService

__all__ = [
    "CalendarFetchResult",
    "CalendarListingService",
    "EventAggregationService",
    "GoogleConnectionService",
    "GoogleTokenService",
    "HolidayService",
    "SelectionStore",
    "TokenCipherService",
    "TokenRefreshError",
    "TokenStore",
    "build_holiday_map",
]
