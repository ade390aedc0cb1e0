"""A small in-process cache whose entries expire after a fixed lifetime."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    expires_at: datetime


class ExpiringCache(Generic[T]):
    """Map of key -> ``(value, expires_at)``; expired entries read as missing."""

    def __init__(self, *, ttl: timedelta, clock: Clock = utc_now) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: T) -> CacheEntry[T]:
        entry = CacheEntry(value=value, expires_at=self._clock() + self._ttl)
        with self._lock:
            self._entries[key] = entry
        return entry


__all__ = ["CacheEntry", "Clock", "ExpiringCache", "utc_now"]
