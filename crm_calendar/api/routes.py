"""
FastAPI routes for the calendar sync service.
"""

from __future__ import annotations

import logging
from datetime import date
from http import HTTPStatus
from typing import Annotated, Any, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse

from crm_calendar.clients import CalendarProviderError, PersistenceError
from crm_calendar.clients.google_auth import OAuthTokenExchangeError, OAuthTokenNotFoundError
from crm_calendar.core.security import InvalidSignatureError
from crm_calendar.dependencies import (
    AuthenticatedUser,
    get_app_settings,
    get_calendar_listing_service,
    get_current_user,
    get_event_aggregation_service,
    get_google_connection_service,
    get_google_oauth_client,
    get_holiday_service,
    get_oauth_state_encoder,
    get_optional_user,
)
from crm_calendar.schemas import (
    CalendarListResponse,
    CalendarSelectionUpdate,
    EventsResponse,
    HolidaysResponse,
    SuccessResponse,
)
from crm_calendar.services import TokenRefreshError, build_holiday_map

router = APIRouter()
google_router = APIRouter(prefix="/google", tags=["google-calendar"])
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@google_router.get("/connect", status_code=HTTPStatus.OK)
async def start_google_oauth_flow(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    oauth_client: Annotated[Any, Depends(get_google_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    redirect: bool = Query(
        default=True,
        description="When false, return the consent URL as JSON instead of redirecting.",
    ),
) -> Any:
    """Send the user to Google's consent screen."""
    state = state_encoder.issue(user_id=user.user_id)
    authorization_url = oauth_client.build_authorization_url(state=state)

    if redirect:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)
    return {"authorization_url": authorization_url, "state": state}


def _settings_redirect(settings: Any, **markers: str) -> RedirectResponse:
    target = f"{settings.settings_page_url}?{urlencode(markers)}"
    return RedirectResponse(url=target, status_code=HTTPStatus.TEMPORARY_REDIRECT)


@google_router.get("/callback")
async def handle_google_oauth_callback(
    user: Annotated[Optional[AuthenticatedUser], Depends(get_optional_user)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    connection_service: Annotated[Any, Depends(get_google_connection_service)],
    code: Optional[str] = Query(default=None, description="Authorization code from Google."),
    error: Optional[str] = Query(default=None, description="Error reported by Google."),
    state: Optional[str] = Query(default=None, description="OAuth state token."),
) -> RedirectResponse:
    """
    Complete the OAuth exchange and bounce the browser back to the settings page.

    Every outcome is a redirect; failures carry an ``error`` marker.
    """
    if error:
        logger.warning("Google OAuth consent returned error: %s", error)
        return _settings_redirect(settings, error="google_auth_failed")

    if not code:
        return _settings_redirect(settings, error="no_code")

    if user is None:
        return RedirectResponse(
            url=settings.login_page_url, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )

    try:
        state_encoder.validate(
            state or "",
            user_id=user.user_id,
            ttl_seconds=settings.oauth.state_ttl_seconds,
        )
    except InvalidSignatureError as exc:
        logger.warning("Rejected OAuth state for user %s: %s", user.user_id, exc)
        return _settings_redirect(settings, error="invalid_state")

    try:
        await connection_service.complete_authorization(user_id=user.user_id, code=code)
    except OAuthTokenExchangeError as exc:
        logger.error("OAuth code exchange failed for user %s: %s", user.user_id, exc)
        return _settings_redirect(settings, error="oauth_failed")
    except PersistenceError as exc:
        logger.error("Failed to store Google tokens for user %s: %s", user.user_id, exc)
        return _settings_redirect(settings, error="db_error")

    return _settings_redirect(settings, google_connected="true")


@google_router.get("/calendars", response_model=CalendarListResponse)
async def list_google_calendars(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    listing_service: Annotated[Any, Depends(get_calendar_listing_service)],
) -> CalendarListResponse:
    """List the user's Google calendars with their sync flags."""
    try:
        calendars = await listing_service.list_calendars(user_id=user.user_id)
    except OAuthTokenNotFoundError as exc:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="Not connected to Google Calendar"
        ) from exc
    except TokenRefreshError as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED, detail="Failed to refresh token"
        ) from exc
    except CalendarProviderError as exc:
        logger.error("Error fetching calendars for user %s: %s", user.user_id, exc)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail="Failed to fetch calendars"
        ) from exc
    except PersistenceError as exc:
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc

    return CalendarListResponse(calendars=calendars)


@google_router.post("/calendars", response_model=SuccessResponse)
async def update_calendar_selection(
    payload: CalendarSelectionUpdate,
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    listing_service: Annotated[Any, Depends(get_calendar_listing_service)],
) -> SuccessResponse:
    """Turn sync on or off for one calendar."""
    try:
        listing_service.set_selected(
            user_id=user.user_id,
            calendar_id=payload.calendar_id,
            calendar_name=payload.calendar_name,
            selected=payload.selected,
        )
    except PersistenceError as exc:
        logger.error("Error updating calendar selection for user %s: %s", user.user_id, exc)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return SuccessResponse()


def _parse_day(value: Optional[str], field_name: str) -> date:
    try:
        return date.fromisoformat(value or "")
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Invalid {field_name} date; expected YYYY-MM-DD",
        ) from exc


@google_router.get("/events", response_model=EventsResponse)
async def list_google_events(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    aggregation_service: Annotated[Any, Depends(get_event_aggregation_service)],
    start: Optional[str] = Query(default=None, description="First day, YYYY-MM-DD."),
    end: Optional[str] = Query(default=None, description="Last day, YYYY-MM-DD."),
) -> EventsResponse:
    """Return events from every synced calendar between two dates, inclusive."""
    missing = [name for name, value in (("start", start), ("end", end)) if not value]
    if missing:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Start and end dates required; missing: {', '.join(missing)}",
        )

    start_day = _parse_day(start, "start")
    end_day = _parse_day(end, "end")
    if end_day < start_day:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="end must not be before start"
        )

    try:
        return await aggregation_service.fetch_events(
            user_id=user.user_id, start=start_day, end=end_day
        )
    except TokenRefreshError as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED, detail="Failed to refresh token"
        ) from exc
    except PersistenceError as exc:
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc


@google_router.post("/disconnect", response_model=SuccessResponse)
async def disconnect_google_calendar(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    connection_service: Annotated[Any, Depends(get_google_connection_service)],
) -> SuccessResponse:
    """Remove the user's Google tokens and calendar selections."""
    try:
        connection_service.disconnect(user_id=user.user_id)
    except PersistenceError as exc:
        logger.error("Error disconnecting Google Calendar for user %s: %s", user.user_id, exc)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return SuccessResponse()


@router.get("/holidays", response_model=HolidaysResponse)
async def list_holidays(
    holiday_service: Annotated[Any, Depends(get_holiday_service)],
) -> HolidaysResponse:
    """Public holidays for this year and next."""
    holidays = await holiday_service.get_federal_holidays()
    return HolidaysResponse(holidays=holidays, by_date=build_holiday_map(holidays))


router.include_router(google_router)


__all__ = ["google_router", "router"]
