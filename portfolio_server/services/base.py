"""Shared service errors."""

from __future__ import annotations

from portfolio_server.providers.models import AdapterFailure


class SymbolUnresolvable(Exception):
    """Every tier, synthetic included, failed to price a symbol."""

    def __init__(self, symbol: str, failures: list[AdapterFailure] | None = None) -> None:
        self.symbol = symbol
        self.failures = list(failures or [])
        super().__init__(f"No tier produced a usable price for {symbol}.")


class BatchPipelineError(Exception):
    """Unexpected failure while orchestrating a refresh pass."""
