try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timedelta, timezone

import pytest

from crm_calendar.clients.google_auth import OAuthStateEncoder
from crm_calendar.core.security import InvalidSignatureError, SessionTokenVerifier


def test_session_token_roundtrip() -> None:
    verifier = SessionTokenVerifier("session-secret")

    token = verifier.issue("user-1", now=1_000)

    assert verifier.verify(token, now=1_500) == "user-1"


def test_session_token_expires() -> None:
    verifier = SessionTokenVerifier("session-secret")
    token = verifier.issue("user-1", ttl_seconds=60, now=1_000)

    with pytest.raises(InvalidSignatureError):
        verifier.verify(token, now=1_060)


def test_session_token_signed_with_other_secret_is_rejected() -> None:
    token = SessionTokenVerifier("someone-else").issue("user-1")

    with pytest.raises(InvalidSignatureError):
        SessionTokenVerifier("session-secret").verify(token)


@pytest.mark.parametrize("token", ["", "%%%", "c2hvcnQ="])
def test_session_token_rejects_malformed_values(token: str) -> None:
    with pytest.raises(InvalidSignatureError):
        SessionTokenVerifier("session-secret").verify(token)


def test_oauth_state_is_bound_to_user_and_ttl() -> None:
    encoder = OAuthStateEncoder("state-secret")
    issued_at = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
    state = encoder.issue(user_id="user-1", now=issued_at)

    payload = encoder.validate(
        state, user_id="user-1", ttl_seconds=900, now=issued_at + timedelta(minutes=5)
    )
    assert payload["user_id"] == "user-1"

    with pytest.raises(InvalidSignatureError):
        encoder.validate(state, user_id="user-2", ttl_seconds=900, now=issued_at)

    with pytest.raises(InvalidSignatureError):
        encoder.validate(
            state, user_id="user-1", ttl_seconds=900, now=issued_at + timedelta(minutes=16)
        )


def test_oauth_state_rejects_tampering() -> None:
    state = OAuthStateEncoder("state-secret").issue(user_id="user-1")

    with pytest.raises(InvalidSignatureError):
        OAuthStateEncoder("other-secret").validate(state, user_id="user-1", ttl_seconds=900)


def test_oauth_states_are_unique_per_issue() -> None:
    encoder = OAuthStateEncoder("state-secret")

    assert encoder.issue(user_id="user-1") != encoder.issue(user_id="user-1")
