"""
Resolve the authenticated dashboard user from the identity provider's session.

The session token arrives either as ``Authorization: Bearer <token>`` (API
clients) or in the session cookie (browser navigation, e.g. the OAuth
callback).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from http import HTTPStatus
from typing import Optional

from fastapi import Depends, HTTPException, Request

from crm_calendar.core.config import AppSettings
from crm_calendar.core.security import InvalidSignatureError, SessionTokenVerifier
from crm_calendar.dependencies.clients import get_app_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str


@lru_cache()
def _verifier_for(secret: str) -> SessionTokenVerifier:
    return SessionTokenVerifier(secret)


def get_session_verifier(
    settings: AppSettings = Depends(get_app_settings),
) -> SessionTokenVerifier:
    """FastAPI dependency returning the session token verifier."""
    return _verifier_for(settings.security.session_secret)


def _extract_session_token(request: Request, cookie_name: str) -> Optional[str]:
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(cookie_name) or None


def get_optional_user(
    request: Request,
    settings: AppSettings = Depends(get_app_settings),
    verifier: SessionTokenVerifier = Depends(get_session_verifier),
) -> Optional[AuthenticatedUser]:
    """Return the signed-in user, or ``None`` when there is no valid session."""
    token = _extract_session_token(request, settings.security.session_cookie_name)
    if not token:
        return None
    try:
        user_id = verifier.verify(token)
    except InvalidSignatureError as exc:
        logger.info("Rejected session token: %s", exc)
        return None
    return AuthenticatedUser(user_id=user_id)


def get_current_user(
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> AuthenticatedUser:
    """Return the signed-in user or reject the request with 401."""
    if user is None:
        raise HTTPException(status_code=HTTPStatus.UNAUTHORIZED, detail="Unauthorized")
    return user


__all__ = [
    "AuthenticatedUser",
    "get_current_user",
    "get_optional_user",
    "get_session_verifier",
]
