"""Yahoo Finance chart adapter, the primary price tier."""

from __future__ import annotations

import math
from urllib.parse import quote

from portfolio_server.providers.base import SourceAdapter, to_yahoo_symbol
from portfolio_server.providers.http import BROWSER_USER_AGENT, ProviderError, fetch_json
from portfolio_server.providers.models import Provenance, QuoteResult, is_usable_price

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"


def _number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _last_close(quote_block: dict) -> float | None:
    closes = quote_block.get("close")
    if not isinstance(closes, list) or not closes:
        return None
    return _number(closes[-1])


class YahooChartAdapter(SourceAdapter):
    adapter_id = "yahoo_chart"
    tier = "primary"

    def _fetch(self, symbol: str) -> QuoteResult | None:
        url = YAHOO_CHART_URL.format(symbol=quote(to_yahoo_symbol(symbol), safe="."))
        data = fetch_json(
            url,
            provider="yahoo_chart",
            timeout_seconds=self.timeout_seconds,
            headers={"User-Agent": BROWSER_USER_AGENT},
            max_retries=self.max_retries,
        )
        results = ((data or {}).get("chart") or {}).get("result") if isinstance(data, dict) else None
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            raise ProviderError("yahoo_chart", "BAD_RESPONSE", "Invalid response structure - no chart result.")
        result = results[0]
        meta = result.get("meta") if isinstance(result.get("meta"), dict) else {}
        quotes = (result.get("indicators") or {}).get("quote") if isinstance(result.get("indicators"), dict) else None
        quote_block = quotes[0] if isinstance(quotes, list) and quotes and isinstance(quotes[0], dict) else {}

        price = _last_close(quote_block)
        if not is_usable_price(price):
            price = _number(meta.get("regularMarketPrice")) or _number(meta.get("previousClose"))
        if not is_usable_price(price):
            return None

        previous_close = (
            _number(meta.get("previousClose"))
            or _number(meta.get("chartPreviousClose"))
            or _number(meta.get("regularMarketPreviousClose"))
            or price
        )
        change = price - previous_close
        change_percent = change / previous_close if previous_close > 0 else 0.0
        return QuoteResult(
            symbol=symbol,
            price=round(price, 2),
            change=round(change, 2),
            change_percent=round(change_percent, 6),
            provenance=Provenance("primary"),
            adapter_id="yahoo_chart",
        )
