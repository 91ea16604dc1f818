"""Per-symbol tiered fallback across quote adapters."""

from __future__ import annotations

import logging
import time
from typing import Sequence

from portfolio_server.providers.base import SourceAdapter
from portfolio_server.providers.models import AdapterFailure, Fundamentals, Provenance, QuoteResult, Tier
from portfolio_server.providers.synthetic import SyntheticQuoteGenerator
from portfolio_server.services.base import SymbolUnresolvable
from portfolio_server.services.provider_status import ProviderStatus
from portfolio_server.utils.rate_limit import RateLimiterRegistry

LOGGER = logging.getLogger(__name__)
DEFAULT_RATE_LIMIT_DISABLE_SECONDS = 60 * 15


class FallbackResolver:
    """Resolves one symbol through an ordered list of adapters.

    Price adapters are tried in order until one yields a usable price.
    Fundamentals are merged from every tier that reports them, then topped up
    from the fundamentals-only adapters and finally from the synthetic
    generator. The returned quote names the tier that priced it and whether
    its fundamentals came from elsewhere.
    """

    def __init__(
        self,
        price_adapters: Sequence[SourceAdapter],
        fundamentals_adapters: Sequence[SourceAdapter] = (),
        synthetic: SyntheticQuoteGenerator | None = None,
        provider_status: ProviderStatus | None = None,
        rate_limiter: RateLimiterRegistry | None = None,
        rate_limit_disable_seconds: int = DEFAULT_RATE_LIMIT_DISABLE_SECONDS,
    ) -> None:
        for adapter in price_adapters:
            if not adapter.supplies_price:
                raise ValueError(f"Adapter {adapter.adapter_id} does not supply prices.")
        self.price_adapters = list(price_adapters)
        self.fundamentals_adapters = list(fundamentals_adapters)
        self.synthetic = synthetic
        self.provider_status = provider_status if provider_status is not None else ProviderStatus()
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiterRegistry(0.0)
        self.rate_limit_disable_seconds = rate_limit_disable_seconds

    def _attempt(self, adapter: SourceAdapter, symbol: str) -> QuoteResult | AdapterFailure:
        if self.provider_status.is_disabled(adapter.adapter_id):
            LOGGER.info(
                "provider skipped (disabled window): symbol=%s provider=%s disabled_until=%s",
                symbol,
                adapter.adapter_id,
                self.provider_status.get_disabled_until(adapter.adapter_id),
            )
            return AdapterFailure(reason="Provider temporarily disabled.", adapter_id=adapter.adapter_id, code="RATE_LIMIT")

        started = time.perf_counter()
        self.rate_limiter.wait(adapter.adapter_id)
        outcome = adapter.fetch(symbol)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        if isinstance(outcome, AdapterFailure):
            LOGGER.warning(
                "provider attempt failed: symbol=%s provider=%s code=%s status=%s latency_ms=%s",
                symbol,
                adapter.adapter_id,
                outcome.code,
                outcome.status,
                elapsed_ms,
            )
            if outcome.code == "RATE_LIMIT":
                disabled_until = self.provider_status.disable_provider(
                    adapter.adapter_id, self.rate_limit_disable_seconds, reason=outcome.reason
                )
                LOGGER.warning(
                    "provider disabled after rate limit: provider=%s disabled_until=%s symbol=%s",
                    adapter.adapter_id,
                    disabled_until,
                    symbol,
                )
        else:
            LOGGER.debug(
                "provider attempt complete: symbol=%s provider=%s usable_price=%s latency_ms=%s",
                symbol,
                adapter.adapter_id,
                outcome.has_usable_price,
                elapsed_ms,
            )
        return outcome

    def resolve(self, symbol: str) -> QuoteResult:
        failures: list[AdapterFailure] = []
        priced: QuoteResult | None = None
        fundamentals = Fundamentals()
        contributors: list[Tier] = []

        def absorb(quote: QuoteResult, tier: Tier) -> None:
            nonlocal fundamentals
            merged = fundamentals.merged_with(quote.fundamentals)
            if merged == fundamentals:
                return
            fundamentals = merged
            if tier not in contributors:
                contributors.append(tier)

        for adapter in self.price_adapters:
            outcome = self._attempt(adapter, symbol)
            if isinstance(outcome, AdapterFailure):
                failures.append(outcome)
                continue
            absorb(outcome, adapter.tier)
            if outcome.has_usable_price:
                priced = outcome
                break

        for adapter in self.fundamentals_adapters:
            if fundamentals.is_complete():
                break
            outcome = self._attempt(adapter, symbol)
            if isinstance(outcome, AdapterFailure):
                failures.append(outcome)
                continue
            absorb(outcome, adapter.tier)

        if self.synthetic is not None and (priced is None or not fundamentals.is_complete()):
            placeholder = self.synthetic.generate(symbol)
            if priced is None:
                LOGGER.info("using synthetic price: symbol=%s failures=%s", symbol, len(failures))
                priced = placeholder
            absorb(placeholder, "synthetic")

        if priced is None:
            raise SymbolUnresolvable(symbol, failures)

        price_tier = priced.provenance.price_tier
        # Any contributor other than the price tier makes the quote mixed; the
        # last such tier is the weakest source that filled a field.
        foreign = [tier for tier in contributors if tier != price_tier]
        fundamentals_tier = foreign[-1] if foreign else (price_tier if contributors else None)
        return QuoteResult(
            symbol=symbol,
            price=priced.price,
            change=priced.change,
            change_percent=priced.change_percent,
            fundamentals=fundamentals,
            provenance=Provenance(price_tier, fundamentals_tier),
            adapter_id=priced.adapter_id,
        )

    def synthesize(self, symbol: str) -> QuoteResult:
        """Placeholder quote for the emergency synthetic pass."""
        generator = self.synthetic or SyntheticQuoteGenerator()
        return generator.generate(symbol)
