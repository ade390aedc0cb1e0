"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from datetime import timedelta
from functools import lru_cache

from crm_calendar.clients import (
    DynamoDBClient,
    GoogleCalendarClient,
    GoogleOAuthClient,
    NagerHolidayClient,
    OAuthStateEncoder,
    RecordStore,
    SQLiteStore,
)
from crm_calendar.core.config import AppSettings, get_settings
from crm_calendar.services import (
    CalendarListingService,
    EventAggregationService,
    GoogleConnectionService,
    GoogleTokenService,
    HolidayService,
    SelectionStore,
    TokenCipherService,
    TokenStore,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the Google client secret."""
    settings = _settings()
    return OAuthStateEncoder(secret_key=settings.google.client_secret)


@lru_cache()
def get_google_oauth_client() -> GoogleOAuthClient:
    """Create a singleton Google OAuth client."""
    settings = _settings()
    return GoogleOAuthClient(
        settings.google,
        settings.oauth,
        redirect_uri=settings.google_redirect_uri,
    )


@lru_cache()
def get_google_calendar_client() -> GoogleCalendarClient:
    """Provide Google Calendar client instance."""
    settings = _settings()
    return GoogleCalendarClient(timeout_seconds=settings.calendar.fetch_timeout_seconds)


@lru_cache()
def get_record_store() -> RecordStore:
    """Provide the configured token and selection record backend."""
    settings = _settings()
    if settings.storage.backend == "dynamodb":
        return DynamoDBClient(settings.storage)
    return SQLiteStore(settings.storage.database_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.google.client_secret
    return TokenCipherService(
        secret=secret, previous_secrets=settings.security.previous_secrets
    )


@lru_cache()
def get_token_store() -> TokenStore:
    return TokenStore(get_record_store(), get_token_cipher_service())


@lru_cache()
def get_selection_store() -> SelectionStore:
    return SelectionStore(get_record_store())


@lru_cache()
def get_google_token_service() -> GoogleTokenService:
    """Provide helper for resolving and refreshing Google OAuth tokens."""
    settings = _settings()
    return GoogleTokenService(
        token_store=get_token_store(),
        oauth_client=get_google_oauth_client(),
        google_settings=settings.google,
        oauth_settings=settings.oauth,
    )


def get_google_connection_service() -> GoogleConnectionService:
    """Build the connect/disconnect service."""
    return GoogleConnectionService(
        oauth_client=get_google_oauth_client(),
        token_store=get_token_store(),
        selection_store=get_selection_store(),
    )


def get_calendar_listing_service() -> CalendarListingService:
    """Build a calendar listing service using configured clients."""
    return CalendarListingService(
        token_service=get_google_token_service(),
        calendar_client=get_google_calendar_client(),
        selection_store=get_selection_store(),
    )


def get_event_aggregation_service() -> EventAggregationService:
    """Build an event aggregation service using configured clients."""
    settings = _settings()
    return EventAggregationService(
        token_service=get_google_token_service(),
        calendar_client=get_google_calendar_client(),
        selection_store=get_selection_store(),
        timezone_name=settings.calendar.timezone,
        max_concurrency=settings.calendar.max_concurrency,
    )


@lru_cache()
def get_holiday_service() -> HolidayService:
    """Provide a process-wide holiday service so its cache is shared."""
    settings = _settings()
    client = NagerHolidayClient(
        base_url=settings.holidays.api_base_url,
        country_code=settings.holidays.country_code,
    )
    return HolidayService(client, cache_ttl=timedelta(days=settings.holidays.cache_ttl_days))


__all__ = [
    "get_app_settings",
    "get_calendar_listing_service",
    "get_event_aggregation_service",
    "get_google_calendar_client",
    "get_google_connection_service",
    "get_google_oauth_client",
    "get_google_token_service",
    "get_holiday_service",
    "get_oauth_state_encoder",
    "get_record_store",
    "get_selection_store",
    "get_token_cipher_service",
    "get_token_store",
]
