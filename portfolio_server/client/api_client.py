"""Client for the portfolio HTTP surface, used by the refresh scheduler."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import requests

from portfolio_server.providers.models import SourceClassification


@dataclass
class PortfolioApiError(Exception):
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message


class PortfolioApiClient:
    def __init__(self, base_url: str, timeout_seconds: float = 30.0, session: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self.latest: dict[str, Any] | None = None

    def _parse(self, response: requests.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as error:
            raise PortfolioApiError("Portfolio API returned non-JSON content.", response.status_code) from error
        if not response.ok or not isinstance(payload, dict) or not payload.get("success"):
            message = payload.get("error") if isinstance(payload, dict) else None
            raise PortfolioApiError(str(message or f"Portfolio API failed with status {response.status_code}."), response.status_code)
        return payload

    def fetch_portfolio(self, bypass_cache: bool = False) -> dict[str, Any]:
        headers = {"X-Bypass-Cache": "true"} if bypass_cache else {}
        try:
            response = self._session.get(f"{self.base_url}/portfolio", headers=headers, timeout=self.timeout_seconds)
        except requests.RequestException as error:
            raise PortfolioApiError("Portfolio API request failed due to network error.") from error
        payload = self._parse(response)
        self.latest = payload
        return payload

    def submit_holdings(self, holdings: list[dict[str, Any]]) -> dict[str, Any]:
        try:
            response = self._session.post(f"{self.base_url}/portfolio", json=holdings, timeout=self.timeout_seconds)
        except requests.RequestException as error:
            raise PortfolioApiError("Portfolio API request failed due to network error.") from error
        payload = self._parse(response)
        self.latest = payload
        return payload

    async def refresh(self, bypass_cache: bool) -> SourceClassification:
        """Refresh callable for ``RefreshScheduler``."""
        payload = await asyncio.to_thread(self.fetch_portfolio, bypass_cache)
        provenance = (payload.get("metadata") or {}).get("provenance")
        try:
            return SourceClassification(provenance)
        except ValueError as error:
            raise PortfolioApiError(f"Unknown provenance in response: {provenance!r}.") from error
