"""Expose constructed client wrappers."""

from .dynamodb import DynamoDBClient
from .google_auth import GoogleOAuthClient, OAuthStateEncoder
from .google_calendar import CalendarProviderError, GoogleCalendarClient
from .holidays import HolidayApiError, NagerHolidayClient
from .record_store import PersistenceError, RecordStore
from .sqlite_store import SQLiteStore

__all__ = [
    "CalendarProviderError",
    "DynamoDBClient",
    "GoogleCalendarClient",
    "GoogleOAuthClient",
    "HolidayApiError",
    "NagerHolidayClient",
    "OAuthStateEncoder",
    "PersistenceError",
    "RecordStore",
    "SQLiteStore",
]
