"""Application-level holdings store and refresh pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from portfolio_server.cache.ttl_cache import TTLCache
from portfolio_server.portfolio import metrics
from portfolio_server.portfolio.models import Holding, PortfolioSummary, SectorAggregate
from portfolio_server.portfolio.seed import demo_holdings
from portfolio_server.portfolio.validation import parse_holdings
from portfolio_server.providers.models import SourceClassification
from portfolio_server.services.base import BatchPipelineError
from portfolio_server.services.batch_orchestrator import BatchOrchestrator, BatchRefreshResult

LOGGER = logging.getLogger(__name__)


@dataclass
class PortfolioSnapshot:
    holdings: list[Holding]
    sectors: list[SectorAggregate]
    summary: PortfolioSummary
    provenance: SourceClassification
    timestamp: float
    processing_time_ms: float = 0.0
    updates_count: int = 0
    cache_hits: int = 0
    missing: list[str] = field(default_factory=list)
    error: str | None = None

    def to_envelope(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(self.timestamp, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "provenance": self.provenance.value,
            "badge": self.provenance.badge,
            "processingTimeMs": self.processing_time_ms,
            "updatesCount": self.updates_count,
            "cacheHits": self.cache_hits,
        }
        if self.missing:
            metadata["missingSymbols"] = list(self.missing)
        if self.error:
            metadata["error"] = self.error
        return {
            "success": True,
            "data": {
                "holdings": [holding.to_dict() for holding in self.holdings],
                "sectors": [sector.to_dict() for sector in self.sectors],
                "summary": self.summary.to_dict(),
            },
            "metadata": metadata,
        }


class PortfolioService:
    """Owns the holdings set; the only writer of its derived fields."""

    def __init__(
        self,
        orchestrator: BatchOrchestrator,
        cache: TTLCache,
        holdings: Sequence[Holding] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.orchestrator = orchestrator
        self.cache = cache
        self._clock = clock
        self._holdings = metrics.recompute(holdings) if holdings is not None else demo_holdings()
        self._provenance = SourceClassification.SYNTHETIC_ONLY
        self._lock = asyncio.Lock()

    @property
    def holdings(self) -> list[Holding]:
        return list(self._holdings)

    def _snapshot(self, holdings: list[Holding], provenance: SourceClassification, started: float, **extra: Any) -> PortfolioSnapshot:
        return PortfolioSnapshot(
            holdings=holdings,
            sectors=metrics.build_sectors(holdings),
            summary=metrics.summarize(holdings),
            provenance=provenance,
            timestamp=self._clock(),
            processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
            **extra,
        )

    def snapshot(self) -> PortfolioSnapshot:
        return self._snapshot(self.holdings, self._provenance, time.perf_counter())

    def _synthetic_result(self, symbols: list[str]) -> BatchRefreshResult:
        updates = [self.orchestrator.resolver.synthesize(symbol) for symbol in symbols]
        return BatchRefreshResult(updates=updates, classification=SourceClassification.SYNTHETIC_ONLY)

    async def refresh(self, bypass_cache: bool = False) -> PortfolioSnapshot:
        async with self._lock:
            started = time.perf_counter()
            symbols = [holding.symbol for holding in self._holdings]
            try:
                result = await self.orchestrator.refresh_all(symbols, bypass_cache=bypass_cache)
                updated = metrics.apply(self._holdings, result.updates)
            except Exception as error:
                failure = error if isinstance(error, BatchPipelineError) else BatchPipelineError(f"{type(error).__name__}: {error}")
                LOGGER.exception("refresh pipeline aborted; serving synthetic pass: error=%s", failure)
                fallback = self._synthetic_result(symbols)
                return self._snapshot(
                    metrics.apply(self._holdings, fallback.updates),
                    SourceClassification.SYNTHETIC_ONLY,
                    started,
                    updates_count=len(fallback.updates),
                    error=str(failure),
                )

            self._holdings = updated
            self._provenance = result.classification
            snapshot = self._snapshot(
                updated,
                result.classification,
                started,
                updates_count=len(result.updates),
                cache_hits=result.cache_hits,
                missing=result.missing,
            )
            LOGGER.info(
                "portfolio refreshed: provenance=%s updates=%s processing_ms=%s",
                snapshot.provenance.value,
                snapshot.updates_count,
                snapshot.processing_time_ms,
            )
            return snapshot

    async def replace_holdings(self, payload: object) -> PortfolioSnapshot:
        """Validate and install a user-supplied holdings set.

        Raises ``InvalidInput`` before touching any state.
        """
        parsed = parse_holdings(payload)
        async with self._lock:
            started = time.perf_counter()
            self._holdings = metrics.recompute(parsed)
            self._provenance = SourceClassification.USER_PROVIDED
            self.cache.invalidate_all()
            LOGGER.info("holdings replaced by user: count=%s", len(self._holdings))
            return self._snapshot(
                self.holdings,
                SourceClassification.USER_PROVIDED,
                started,
                updates_count=len(self._holdings),
            )

    def sweep_cache(self) -> int:
        removed = self.cache.sweep()
        if removed:
            LOGGER.info("cache cleanup: removed=%s", removed)
        return removed
