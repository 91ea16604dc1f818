"""Cool-down windows for adapters that reported rate limiting."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class DisableWindow:
    adapter_id: str
    until: float
    reason: str = "rate limited"


class ProviderStatus:
    """Remembers which adapters are cooling down and why.

    Windows only ever extend: a shorter disable request never cuts an
    existing window short. Expired windows are dropped lazily on read.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, DisableWindow] = {}

    def disable_provider(self, adapter_id: str, ttl_seconds: int, reason: str = "rate limited") -> float:
        requested = DisableWindow(adapter_id, self._clock() + max(1, ttl_seconds), reason)
        with self._lock:
            current = self._windows.get(adapter_id)
            if current is None or requested.until > current.until:
                self._windows[adapter_id] = requested
            return self._windows[adapter_id].until

    def window(self, adapter_id: str) -> DisableWindow | None:
        now = self._clock()
        with self._lock:
            current = self._windows.get(adapter_id)
            if current is not None and current.until <= now:
                del self._windows[adapter_id]
                return None
            return current

    def is_disabled(self, adapter_id: str) -> bool:
        return self.window(adapter_id) is not None

    def get_disabled_until(self, adapter_id: str) -> float | None:
        current = self.window(adapter_id)
        return current.until if current else None

    def describe(self) -> dict[str, dict[str, object]]:
        """Health-endpoint view: remaining seconds and reason per adapter."""
        now = self._clock()
        with self._lock:
            return {
                name: {"remaining_seconds": round(window.until - now, 1), "reason": window.reason}
                for name, window in self._windows.items()
                if window.until > now
            }
