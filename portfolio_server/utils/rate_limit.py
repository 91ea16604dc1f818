"""Minimum spacing between calls to the same quote adapter."""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable


class RateLimiterRegistry:
    """Spaces calls per adapter id by at least ``min_interval_seconds``.

    Each adapter gets its own lock, so a caller waiting on Yahoo never holds
    up a concurrent Google Finance request. Calls to one adapter from several
    worker threads are serialized and spaced in arrival order.
    """

    def __init__(
        self,
        min_interval_seconds: float = 0.2,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval_seconds = max(0.0, min_interval_seconds)
        self._clock = clock
        self._sleep = sleep
        self._last_called: dict[str, float] = {}
        self._adapter_locks: dict[str, Lock] = {}
        self._registry_lock = Lock()

    def _lock_for(self, adapter_id: str) -> Lock:
        with self._registry_lock:
            lock = self._adapter_locks.get(adapter_id)
            if lock is None:
                lock = self._adapter_locks[adapter_id] = Lock()
            return lock

    def wait(self, adapter_id: str) -> float:
        """Block until ``adapter_id`` may be called again; returns the seconds waited."""
        if self.min_interval_seconds <= 0:
            return 0.0
        with self._lock_for(adapter_id):
            waited = 0.0
            last = self._last_called.get(adapter_id)
            if last is not None:
                remaining = self.min_interval_seconds - (self._clock() - last)
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
            self._last_called[adapter_id] = self._clock()
            return waited
