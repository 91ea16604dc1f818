"""Fundamentals-only adapter backed by yfinance."""

from __future__ import annotations

import math

import yfinance as yf

from portfolio_server.providers.base import SourceAdapter, to_yahoo_symbol
from portfolio_server.providers.http import ProviderError
from portfolio_server.providers.models import Fundamentals, Provenance, QuoteResult


def _positive(value: object, upper: float | None = None) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if not math.isfinite(number) or number <= 0:
        return None
    if upper is not None and number >= upper:
        return None
    return number


def extract_fundamentals(info: dict) -> Fundamentals:
    pe_ratio = _positive(info.get("trailingPE"), 1000) or _positive(info.get("forwardPE"), 1000)
    earnings = _positive(info.get("trailingEps")) or _positive(info.get("forwardEps"))
    market_cap = _positive(info.get("marketCap"))
    return Fundamentals(pe_ratio=pe_ratio, latest_earnings=earnings, market_cap=market_cap)


class YahooFundamentalsAdapter(SourceAdapter):
    adapter_id = "yahoo_fundamentals"
    tier = "primary"
    supplies_price = False

    def _load_info(self, yahoo_symbol: str) -> dict:
        info = yf.Ticker(yahoo_symbol).info
        return info if isinstance(info, dict) else {}

    def _fetch(self, symbol: str) -> QuoteResult | None:
        try:
            info = self._load_info(to_yahoo_symbol(symbol))
        except (KeyError, ValueError, TypeError) as error:
            raise ProviderError("yahoo_fundamentals", "BAD_RESPONSE", "Unexpected quote summary payload.") from error
        fundamentals = extract_fundamentals(info)
        if fundamentals.is_empty():
            return None
        return QuoteResult(
            symbol=symbol,
            price=None,
            fundamentals=fundamentals,
            provenance=Provenance("primary", "primary"),
            adapter_id="yahoo_fundamentals",
        )
