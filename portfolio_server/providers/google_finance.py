"""Google Finance page scraper, the secondary price tier.

The quote page is HTML, so every extraction is a best-effort regex match.
Anything that does not parse cleanly is treated as absent.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import quote

from portfolio_server.providers.base import SourceAdapter
from portfolio_server.providers.http import BROWSER_USER_AGENT, ProviderError, fetch_text
from portfolio_server.providers.models import Fundamentals, Provenance, QuoteResult, is_usable_price

LOGGER = logging.getLogger(__name__)

GOOGLE_QUOTE_URL = "https://www.google.com/finance/quote/{symbol}:{exchange}"
EXCHANGES = ("NSE", "BOM")
PAGE_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

PRICE_PATTERNS = (
    re.compile(r'data-last-price="([^"]+)"', re.IGNORECASE),
    re.compile(r'"c"\s*:\s*\[\s*,\s*,\s*"([^"]+)"', re.IGNORECASE),
    re.compile(r'class="[^"]*YMlKec[^"]*"[^>]*>([^<]+)<', re.IGNORECASE),
)
PE_PATTERNS = (
    re.compile(r"P/E\s*ratio[^>]*>([^<]+)<", re.IGNORECASE),
    re.compile(r'"pe_ratio"[^:]*:\s*([^,}]+)', re.IGNORECASE),
    re.compile(r"P/E[^>]*:\s*([^\s<]+)", re.IGNORECASE),
)
EPS_PATTERNS = (
    re.compile(r"EPS[^>]*>([^<]+)<", re.IGNORECASE),
    re.compile(r'"eps"[^:]*:\s*([^,}]+)', re.IGNORECASE),
    re.compile(r"Earnings\s*per\s*share[^>]*:\s*([^\s<]+)", re.IGNORECASE),
)
_NON_NUMERIC = re.compile(r"[^\d.\-]")


def _parse_number(raw: str) -> float | None:
    cleaned = _NON_NUMERIC.sub("", raw)
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def _first_match(html: str, patterns: tuple[re.Pattern[str], ...], accept) -> float | None:
    for pattern in patterns:
        match = pattern.search(html)
        if not match:
            continue
        value = _parse_number(match.group(1))
        if value is not None and accept(value):
            return value
    return None


def parse_quote_page(symbol: str, html: str) -> QuoteResult | None:
    price = _first_match(html, PRICE_PATTERNS, is_usable_price)
    pe_ratio = _first_match(html, PE_PATTERNS, lambda value: 0 < value < 1000)
    eps = _first_match(html, EPS_PATTERNS, lambda value: value > 0)
    if price is None and pe_ratio is None and eps is None:
        return None
    fundamentals = Fundamentals(pe_ratio=pe_ratio, latest_earnings=eps)
    return QuoteResult(
        symbol=symbol,
        price=round(price, 2) if price is not None else None,
        fundamentals=fundamentals,
        provenance=Provenance("secondary", None if fundamentals.is_empty() else "secondary"),
        adapter_id="google_finance",
    )


class GoogleFinanceAdapter(SourceAdapter):
    adapter_id = "google_finance"
    tier = "secondary"

    def _fetch(self, symbol: str) -> QuoteResult | None:
        code = quote(symbol.strip().upper().split(".")[0], safe="")
        last_error: ProviderError | None = None
        partial: QuoteResult | None = None
        for exchange in EXCHANGES:
            url = GOOGLE_QUOTE_URL.format(symbol=code, exchange=exchange)
            try:
                html = fetch_text(
                    url,
                    provider="google_finance",
                    timeout_seconds=self.timeout_seconds,
                    headers=PAGE_HEADERS,
                    max_retries=self.max_retries,
                )
            except ProviderError as error:
                LOGGER.info("google finance listing failed: symbol=%s exchange=%s code=%s", symbol, exchange, error.code)
                last_error = error
                continue
            parsed = parse_quote_page(symbol, html)
            if parsed is None:
                continue
            if parsed.has_usable_price:
                return parsed
            partial = partial or parsed
        if partial is not None:
            return partial
        if last_error is not None:
            raise last_error
        return None
