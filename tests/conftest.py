"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from crm_calendar.clients import SQLiteStore
from crm_calendar.core.config import GoogleSettings, OAuthSettings
from crm_calendar.services import SelectionStore, TokenCipherService, TokenStore


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def record_store(tmp_path) -> SQLiteStore:
    """A throwaway SQLite record store per test."""
    return SQLiteStore(str(tmp_path / "records.db"))


@pytest.fixture
def token_cipher() -> TokenCipherService:
    return TokenCipherService(secret="test-token-secret")


@pytest.fixture
def token_store(record_store, token_cipher) -> TokenStore:
    return TokenStore(record_store, token_cipher)


@pytest.fixture
def selection_store(record_store) -> SelectionStore:
    return SelectionStore(record_store)


@pytest.fixture
def google_settings() -> GoogleSettings:
    return GoogleSettings(GOOGLE_CLIENT_ID="client-id", GOOGLE_CLIENT_SECRET="client-secret")


@pytest.fixture
def oauth_settings() -> OAuthSettings:
    return OAuthSettings()
