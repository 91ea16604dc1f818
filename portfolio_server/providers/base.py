"""Uniform adapter contract for quote sources."""

from __future__ import annotations

import logging

from portfolio_server.providers.http import ProviderError
from portfolio_server.providers.models import AdapterFailure, AdapterId, QuoteResult, Tier

LOGGER = logging.getLogger(__name__)

NSE_SUFFIX = ".NS"


def to_yahoo_symbol(symbol: str) -> str:
    clean = symbol.strip().upper()
    return clean if "." in clean else f"{clean}{NSE_SUFFIX}"


class SourceAdapter:
    """Base class for quote adapters.

    Subclasses implement ``_fetch`` and may raise ``ProviderError`` or return
    ``None`` when the provider has nothing for the symbol. ``fetch`` never
    raises: every error becomes an ``AdapterFailure``.
    """

    adapter_id: AdapterId = "yahoo_chart"
    tier: Tier = "primary"
    supplies_price: bool = True

    def __init__(self, timeout_seconds: float = 10.0, max_retries: int = 2) -> None:
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries

    def _fetch(self, symbol: str) -> QuoteResult | None:
        raise NotImplementedError

    def fetch(self, symbol: str) -> QuoteResult | AdapterFailure:
        try:
            result = self._fetch(symbol)
        except ProviderError as error:
            return AdapterFailure(reason=error.message, adapter_id=self.adapter_id, code=error.code, status=error.status)
        except Exception as error:
            LOGGER.exception("adapter unexpected failure: provider=%s symbol=%s", self.adapter_id, symbol)
            return AdapterFailure(reason=f"{type(error).__name__}: {error}", adapter_id=self.adapter_id, code="BAD_RESPONSE")
        if result is None:
            return AdapterFailure(reason="Provider returned no data.", adapter_id=self.adapter_id, code="NO_DATA")
        return result
