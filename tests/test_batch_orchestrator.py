import asyncio
import threading

from portfolio_server.cache.ttl_cache import TTLCache
from portfolio_server.providers.models import Provenance, QuoteResult, SourceClassification
from portfolio_server.providers.synthetic import SyntheticQuoteGenerator
from portfolio_server.services.base import SymbolUnresolvable
from portfolio_server.services.batch_orchestrator import BatchOrchestrator, classify


class StubResolver:
    """Prices listed symbols live, synthesizes or rejects the rest."""

    def __init__(self, prices: dict[str, float], synthetic: bool = True) -> None:
        self.prices = dict(prices)
        self.synthetic = synthetic
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def resolve(self, symbol: str) -> QuoteResult:
        with self._lock:
            self.calls.append(symbol)
        if symbol in self.prices:
            return QuoteResult(symbol=symbol, price=self.prices[symbol], provenance=Provenance("primary"))
        if self.synthetic:
            return SyntheticQuoteGenerator().generate(symbol)
        raise SymbolUnresolvable(symbol)

    def synthesize(self, symbol: str) -> QuoteResult:
        return SyntheticQuoteGenerator().generate(symbol)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _orchestrator(resolver, cache=None, sleep=None, batch_size=5) -> BatchOrchestrator:
    return BatchOrchestrator(
        resolver=resolver,
        cache=cache if cache is not None else TTLCache(default_ttl_seconds=120),
        batch_size=batch_size,
        inter_batch_delay_seconds=0.5,
        sleep=sleep or RecordingSleep(),
    )


def test_classify() -> None:
    assert classify(5, 5) is SourceClassification.FULL
    assert classify(5, 3) is SourceClassification.PARTIAL
    assert classify(5, 0) is SourceClassification.SYNTHETIC_ONLY
    assert classify(0, 0) is SourceClassification.FULL


def test_cache_hit_skips_resolution() -> None:
    resolver = StubResolver({"INFY": 1500.0, "TCS": 3400.0})
    orchestrator = _orchestrator(resolver)

    first = asyncio.run(orchestrator.refresh_all(["INFY", "TCS"]))
    second = asyncio.run(orchestrator.refresh_all(["INFY", "TCS"]))

    assert first.cache_hits == 0
    assert second.cache_hits == 2
    assert sorted(resolver.calls) == ["INFY", "TCS"]
    assert second.classification is SourceClassification.FULL


def test_bypass_cache_refetches_and_overwrites_entry() -> None:
    cache = TTLCache(default_ttl_seconds=120)
    resolver = StubResolver({"INFY": 1500.0})
    orchestrator = _orchestrator(resolver, cache=cache)
    asyncio.run(orchestrator.refresh_all(["INFY"]))

    resolver.prices["INFY"] = 1525.0
    result = asyncio.run(orchestrator.refresh_all(["INFY"], bypass_cache=True))

    assert result.cache_hits == 0
    assert result.updates[0].price == 1525.0
    assert cache.get("INFY:quote").price == 1525.0
    assert resolver.calls == ["INFY", "INFY"]


def test_partial_run_withholds_synthetic_prices() -> None:
    resolver = StubResolver({"A": 10.0, "B": 20.0, "C": 30.0})
    orchestrator = _orchestrator(resolver)

    result = asyncio.run(orchestrator.refresh_all(["A", "B", "C", "D", "E"]))

    assert result.classification is SourceClassification.PARTIAL
    assert [quote.symbol for quote in result.updates] == ["A", "B", "C"]
    assert result.synthetic == ["D", "E"]
    assert result.missing == []


def test_synthetic_only_run_applies_and_never_caches_placeholders() -> None:
    cache = TTLCache()
    orchestrator = _orchestrator(StubResolver({}), cache=cache)

    result = asyncio.run(orchestrator.refresh_all(["A", "B"]))

    assert result.classification is SourceClassification.SYNTHETIC_ONLY
    assert len(result.updates) == 2
    assert all(quote.is_synthetic for quote in result.updates)
    assert len(cache) == 0


def test_symbols_are_processed_in_batches_with_delay() -> None:
    sleep = RecordingSleep()
    symbols = [f"SYM{index}" for index in range(12)]
    resolver = StubResolver({symbol: 100.0 for symbol in symbols})
    orchestrator = _orchestrator(resolver, sleep=sleep, batch_size=5)

    result = asyncio.run(orchestrator.refresh_all(symbols))

    assert sleep.delays == [0.5, 0.5]
    assert len(result.updates) == 12
    assert set(resolver.calls[:5]) == set(symbols[:5])


def test_duplicate_symbols_are_resolved_once() -> None:
    resolver = StubResolver({"INFY": 1500.0, "TCS": 3400.0})
    result = asyncio.run(_orchestrator(resolver).refresh_all(["infy", "INFY", " tcs "]))
    assert sorted(resolver.calls) == ["INFY", "TCS"]
    assert len(result.updates) == 2


def test_unresolvable_symbols_are_reported_missing() -> None:
    resolver = StubResolver({"INFY": 1500.0}, synthetic=False)
    result = asyncio.run(_orchestrator(resolver).refresh_all(["INFY", "GONE"]))

    assert result.missing == ["GONE"]
    assert result.classification is SourceClassification.PARTIAL
    assert [quote.symbol for quote in result.updates] == ["INFY"]


def test_resolver_crash_is_contained_to_its_symbol() -> None:
    class Crashing(StubResolver):
        def resolve(self, symbol):
            if symbol == "BAD":
                raise RuntimeError("parser exploded")
            return super().resolve(symbol)

    result = asyncio.run(_orchestrator(Crashing({"INFY": 1500.0})).refresh_all(["INFY", "BAD"]))
    assert result.missing == ["BAD"]
    assert len(result.updates) == 1


def test_empty_cache_passed_in_is_the_one_written_to() -> None:
    cache = TTLCache(default_ttl_seconds=120)
    orchestrator = _orchestrator(StubResolver({"INFY": 1500.0}), cache=cache)

    assert orchestrator.cache is cache
    asyncio.run(orchestrator.refresh_all(["INFY"]))
    assert len(cache) == 1
