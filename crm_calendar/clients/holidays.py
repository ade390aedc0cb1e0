"""Client for the Nager.Date public holiday API."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx


class HolidayApiError(Exception):
    """Raised when the holiday API cannot be reached or returns an error."""


class NagerHolidayClient:
    """Fetch public holidays for one country and year."""

    def __init__(
        self,
        *,
        base_url: str,
        country_code: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._country_code = country_code
        self._timeout = timeout_seconds
        self._transport = transport

    async def fetch_year(self, year: int) -> List[Dict[str, Any]]:
        url = f"{self._base_url}/{year}/{self._country_code}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise HolidayApiError(f"Holiday API request for {year} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise HolidayApiError("Holiday API returned invalid JSON.") from exc
        if not isinstance(payload, list):
            raise HolidayApiError("Holiday API returned an unexpected payload.")
        return payload


__all__ = ["HolidayApiError", "NagerHolidayClient"]
