"""Public holidays for the dashboard calendar views."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from crm_calendar.clients import HolidayApiError, NagerHolidayClient
from crm_calendar.schemas import FederalHoliday
from crm_calendar.utils.cache import Clock, ExpiringCache, utc_now

logger = logging.getLogger(__name__)

_CACHE_KEY = "federal_holidays"


class HolidayService:
    """Current and next year's public holidays, cached between lookups."""

    def __init__(
        self,
        client: NagerHolidayClient,
        *,
        cache_ttl: timedelta = timedelta(days=365),
        clock: Clock = utc_now,
    ) -> None:
        self._client = client
        self._clock = clock
        self._cache: ExpiringCache[List[FederalHoliday]] = ExpiringCache(ttl=cache_ttl, clock=clock)

    async def get_federal_holidays(self) -> List[FederalHoliday]:
        cached = self._cache.get(_CACHE_KEY)
        if cached is not None:
            return list(cached)

        current_year = self._clock().year
        outcomes = await asyncio.gather(
            self._fetch_year(current_year), self._fetch_year(current_year + 1)
        )

        holidays: List[FederalHoliday] = []
        complete = True
        for year_holidays, ok in outcomes:
            holidays.extend(year_holidays)
            complete = complete and ok

        # A partial answer is returned but not cached so the failed year is retried.
        if complete:
            self._cache.set(_CACHE_KEY, holidays)
        return holidays

    async def _fetch_year(self, year: int) -> Tuple[List[FederalHoliday], bool]:
        try:
            payload = await self._client.fetch_year(year)
        except HolidayApiError as exc:
            logger.error("Failed to fetch holidays for %s: %s", year, exc)
            return [], False

        holidays = []
        for entry in payload:
            if not isinstance(entry, dict) or "Public" not in (entry.get("types") or []):
                continue
            name: Optional[str] = entry.get("localName") or entry.get("name")
            if not entry.get("date") or not name:
                continue
            holidays.append(FederalHoliday(date=entry["date"], name=name))
        return holidays, True


def build_holiday_map(holidays: Iterable[FederalHoliday]) -> Dict[str, List[str]]:
    """Group holiday names by date."""
    by_date: Dict[str, List[str]] = defaultdict(list)
    for holiday in holidays:
        by_date[holiday.date].append(holiday.name)
    return dict(by_date)


__all__ = ["HolidayService", "build_holiday_map"]
