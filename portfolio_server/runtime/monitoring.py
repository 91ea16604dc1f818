"""Request metrics for the health endpoint and JSON access logging."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

ACCESS_LOGGER = logging.getLogger("portfolio_server.access")


@dataclass
class HealthSnapshot:
    uptime_seconds: float
    total_requests: int
    error_rate: float
    avg_latency_ms: float
    provenance_counts: dict[str, int] = field(default_factory=dict)
    last_provenance: str | None = None


class ServerMetrics:
    """Counts served requests and the provenance of each portfolio response."""

    def __init__(self, started_at: float | None = None) -> None:
        self.started_at = started_at or time.time()
        self._lock = threading.Lock()
        self._requests = 0
        self._failures = 0
        self._latency_total_ms = 0.0
        self._provenance: Counter[str] = Counter()
        self._last_provenance: str | None = None

    def record(self, latency_ms: float, success: bool, provenance: str | None = None) -> None:
        with self._lock:
            self._requests += 1
            self._failures += 0 if success else 1
            self._latency_total_ms += max(0.0, latency_ms)
            if provenance:
                self._provenance[provenance] += 1
                self._last_provenance = provenance

    def snapshot(self) -> HealthSnapshot:
        with self._lock:
            count = self._requests
            return HealthSnapshot(
                uptime_seconds=max(0.0, time.time() - self.started_at),
                total_requests=count,
                error_rate=self._failures / count if count else 0.0,
                avg_latency_ms=self._latency_total_ms / count if count else 0.0,
                provenance_counts=dict(self._provenance),
                last_provenance=self._last_provenance,
            )


def log_request_event(
    method: str,
    path: str,
    status: int,
    latency_ms: float,
    provenance: str | None = None,
    warning: str | None = None,
) -> None:
    event: dict[str, Any] = {
        "event": "http_request",
        "method": method,
        "path": path,
        "status": status,
        "latency_ms": round(latency_ms, 3),
        "ts": int(time.time()),
    }
    if provenance:
        event["provenance"] = provenance
    if warning:
        event["warning"] = warning
    ACCESS_LOGGER.info(json.dumps(event, ensure_ascii=True, sort_keys=True))
