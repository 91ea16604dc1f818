"""Small in-memory TTL cache for quote results."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    inserted_at: float
    ttl_seconds: float

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl_seconds


def cache_key(symbol: str, purpose: str) -> str:
    return f"{symbol.strip().upper()}:{purpose}"


class TTLCache:
    """Thread-safe TTL cache keyed by string.

    Entries expire by comparing elapsed time against their TTL at read time.
    ``sweep`` drops expired entries in bulk and is safe to call from a timer.
    """

    def __init__(self, default_ttl_seconds: float = 60, clock: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl_seconds = max(1, default_ttl_seconds)
        self._clock = clock
        self._data: dict[str, CacheEntry[object]] = {}
        self._lock = Lock()

    def get(self, key: str) -> object | None:
        now = self._clock()
        with self._lock:
            entry = self._data.get(key)
            if not entry:
                return None
            if entry.is_expired(now):
                self._data.pop(key, None)
                return None
            return entry.value

    def set(self, key: str, value: object, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else max(1, ttl_seconds)
        with self._lock:
            self._data[key] = CacheEntry(value=value, inserted_at=self._clock(), ttl_seconds=ttl)

    def invalidate_all(self) -> None:
        with self._lock:
            self._data.clear()

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._data.items() if entry.is_expired(now)]
            for key in expired:
                del self._data[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
