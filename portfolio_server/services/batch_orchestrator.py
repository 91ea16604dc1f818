"""Batched, rate-limited refresh of a symbol list."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

from portfolio_server.cache.ttl_cache import TTLCache, cache_key
from portfolio_server.providers.models import QuoteResult, SourceClassification
from portfolio_server.services.base import SymbolUnresolvable
from portfolio_server.services.fallback_resolver import FallbackResolver

LOGGER = logging.getLogger(__name__)
QUOTE_PURPOSE = "quote"


@dataclass
class BatchRefreshResult:
    updates: list[QuoteResult]
    classification: SourceClassification
    missing: list[str] = field(default_factory=list)
    synthetic: list[str] = field(default_factory=list)
    cache_hits: int = 0


def classify(total: int, live: int) -> SourceClassification:
    if live == total:
        return SourceClassification.FULL
    if live == 0:
        return SourceClassification.SYNTHETIC_ONLY
    return SourceClassification.PARTIAL


def _dedupe(symbols: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for symbol in symbols:
        clean = symbol.strip().upper()
        if clean and clean not in seen:
            seen.add(clean)
            ordered.append(clean)
    return ordered


class BatchOrchestrator:
    def __init__(
        self,
        resolver: FallbackResolver,
        cache: TTLCache,
        batch_size: int = 5,
        inter_batch_delay_seconds: float = 0.5,
        quote_ttl_seconds: float = 120,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.resolver = resolver
        self.cache = cache
        self.batch_size = max(1, batch_size)
        self.inter_batch_delay_seconds = max(0.0, inter_batch_delay_seconds)
        self.quote_ttl_seconds = quote_ttl_seconds
        self._sleep = sleep

    async def _resolve(self, symbol: str, bypass_cache: bool) -> tuple[QuoteResult, bool]:
        key = cache_key(symbol, QUOTE_PURPOSE)
        if not bypass_cache:
            cached = self.cache.get(key)
            if isinstance(cached, QuoteResult):
                return cached, True
        quote = await asyncio.to_thread(self.resolver.resolve, symbol)
        if not quote.is_synthetic:
            self.cache.set(key, quote, ttl_seconds=self.quote_ttl_seconds)
        return quote, False

    async def quote(self, symbol: str, bypass_cache: bool = False) -> tuple[QuoteResult, bool]:
        """Resolve one symbol through the shared quote cache.

        Raises ``SymbolUnresolvable`` when no tier yields a price.
        """
        return await self._resolve(symbol.strip().upper(), bypass_cache)

    async def refresh_all(self, symbols: Sequence[str], bypass_cache: bool = False) -> BatchRefreshResult:
        ordered = _dedupe(symbols)
        LOGGER.info("refresh started: symbols=%s bypass_cache=%s", len(ordered), bypass_cache)
        resolved: list[QuoteResult] = []
        missing: list[str] = []
        cache_hits = 0

        for start in range(0, len(ordered), self.batch_size):
            batch = ordered[start : start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self._resolve(symbol, bypass_cache) for symbol in batch),
                return_exceptions=True,
            )
            for symbol, outcome in zip(batch, outcomes):
                if isinstance(outcome, SymbolUnresolvable):
                    LOGGER.warning("symbol unresolvable: symbol=%s failures=%s", symbol, len(outcome.failures))
                    missing.append(symbol)
                elif isinstance(outcome, BaseException):
                    LOGGER.error("symbol resolution crashed: symbol=%s error=%r", symbol, outcome)
                    missing.append(symbol)
                else:
                    quote, from_cache = outcome
                    cache_hits += int(from_cache)
                    resolved.append(quote)
            if start + self.batch_size < len(ordered):
                await self._sleep(self.inter_batch_delay_seconds)

        live = [quote for quote in resolved if not quote.is_synthetic]
        synthetic = [quote.symbol for quote in resolved if quote.is_synthetic]
        classification = classify(len(ordered), len(live))
        # Partial runs keep the last known price for synthetic-only symbols.
        updates = live if classification is SourceClassification.PARTIAL else resolved

        LOGGER.info(
            "refresh complete: resolved=%s/%s live=%s synthetic=%s missing=%s cache_hits=%s classification=%s",
            len(resolved),
            len(ordered),
            len(live),
            len(synthetic),
            len(missing),
            cache_hits,
            classification.value,
        )
        if missing:
            LOGGER.warning("failed symbols: %s", ", ".join(missing))
        return BatchRefreshResult(
            updates=updates,
            classification=classification,
            missing=missing,
            synthetic=synthetic,
            cache_hits=cache_hits,
        )
