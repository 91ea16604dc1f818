"""Deterministic placeholder quotes for when every real source fails."""

from __future__ import annotations

import hashlib
import random

from portfolio_server.providers.base import SourceAdapter
from portfolio_server.providers.models import Fundamentals, Provenance, QuoteResult


def symbol_seed(symbol: str) -> int:
    digest = hashlib.sha256(symbol.strip().upper().encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


class SyntheticQuoteGenerator(SourceAdapter):
    """Seeds a private RNG from a stable hash of the symbol.

    The same symbol always yields the same price, P/E and earnings, across
    calls and across processes.
    """

    adapter_id = "synthetic"
    tier = "synthetic"

    def generate(self, symbol: str) -> QuoteResult:
        rng = random.Random(symbol_seed(symbol))
        base_price = rng.randint(100, 1099)
        variation = rng.randint(0, 99) / 10
        change = variation if rng.random() < 0.5 else -variation
        price = round(base_price + change, 2)
        return QuoteResult(
            symbol=symbol,
            price=price,
            change=round(change, 2),
            change_percent=round(change / base_price, 6),
            fundamentals=Fundamentals(
                pe_ratio=float(15 + rng.randint(0, 39)),
                latest_earnings=float(50 + rng.randint(0, 199)),
            ),
            provenance=Provenance("synthetic", "synthetic"),
            adapter_id="synthetic",
        )

    def _fetch(self, symbol: str) -> QuoteResult | None:
        return self.generate(symbol)
