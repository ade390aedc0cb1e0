"""Expose dependency helpers for FastAPI routers."""

from .auth import (
    AuthenticatedUser,
    get_current_user,
    get_optional_user,
    get_session_verifier,
)
from .clients import (
    get_app_settings,
    get_calendar_listing_service,
    get_event_aggregation_service,
    get_google_calendar_client,
    get_google_connection_service,
    get_google_oauth_client,
    get_google_token_service,
    get_holiday_service,
    get_oauth_state_encoder,
    get_record_store,
    get_selection_store,
    get_token_cipher_service,
    get_token_store,
)

__all__ = [
    "AuthenticatedUser",
    "get_app_settings",
    "get_calendar_listing_service",
    "get_current_user",
    "get_event_aggregation_service",
    "get_google_calendar_client",
    "get_google_connection_service",
    "get_google_oauth_client",
    "get_google_token_service",
    "get_holiday_service",
    "get_oauth_state_encoder",
    "get_optional_user",
    "get_record_store",
    "get_selection_store",
    "get_session_verifier",
    "get_token_cipher_service",
    "get_token_store",
]
