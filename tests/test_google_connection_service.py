from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from crm_calendar.clients.google_auth import OAuthTokenExchangeError
from crm_calendar.services import GoogleConnectionService


class DummyOAuthClient:
    def __init__(self, refresh_token: str | None) -> None:
        self.refresh_token = refresh_token

    async def exchange_authorization_code(self, code: str):
        return (f"access-for-{code}", self.refresh_token, 3600)


def _service(oauth_client, token_store, selection_store) -> GoogleConnectionService:
    return GoogleConnectionService(
        oauth_client=oauth_client, token_store=token_store, selection_store=selection_store
    )


@pytest.mark.asyncio
async def test_complete_authorization_stores_token_pair(token_store, selection_store) -> None:
    service = _service(DummyOAuthClient("refresh-1"), token_store, selection_store)

    await service.complete_authorization(user_id="user-1", code="abc")

    stored = token_store.get("user-1")
    assert stored.access_token == "access-for-abc"
    assert stored.refresh_token == "refresh-1"
    expected_expiry = datetime.now(timezone.utc) + timedelta(seconds=3600)
    assert abs((stored.token_expiry - expected_expiry).total_seconds()) < 60


@pytest.mark.asyncio
async def test_reconnect_without_refresh_token_keeps_the_stored_one(
    token_store, selection_store
) -> None:
    await _service(DummyOAuthClient("refresh-1"), token_store, selection_store).complete_authorization(
        user_id="user-1", code="first"
    )

    await _service(DummyOAuthClient(None), token_store, selection_store).complete_authorization(
        user_id="user-1", code="second"
    )

    stored = token_store.get("user-1")
    assert stored.access_token == "access-for-second"
    assert stored.refresh_token == "refresh-1"


@pytest.mark.asyncio
async def test_first_connect_without_refresh_token_fails(token_store, selection_store) -> None:
    service = _service(DummyOAuthClient(None), token_store, selection_store)

    with pytest.raises(OAuthTokenExchangeError):
        await service.complete_authorization(user_id="user-1", code="abc")
    assert token_store.get("user-1") is None


@pytest.mark.asyncio
async def test_disconnect_clears_tokens_and_selections(token_store, selection_store) -> None:
    service = _service(DummyOAuthClient("refresh-1"), token_store, selection_store)
    await service.complete_authorization(user_id="user-1", code="abc")
    selection_store.upsert("user-1", calendar_id="work", calendar_name="Work")
    selection_store.upsert("user-1", calendar_id="home", calendar_name="Home")

    service.disconnect(user_id="user-1")

    assert token_store.get("user-1") is None
    assert selection_store.list("user-1") == []


def test_selection_store_upsert_is_idempotent(selection_store) -> None:
    selection_store.upsert("user-1", calendar_id="work", calendar_name="Work")
    selection_store.upsert("user-1", calendar_id="work", calendar_name="Work")

    selections = selection_store.list("user-1", selected_only=True)
    assert [(s.calendar_id, s.calendar_name, s.is_selected) for s in selections] == [
        ("work", "Work", True)
    ]

    selection_store.delete("user-1", calendar_id="work")
    assert selection_store.list("user-1") == []
