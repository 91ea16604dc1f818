"""Normalized quote models shared across adapters, resolver and orchestrator."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

AdapterId = Literal["yahoo_chart", "google_finance", "yahoo_fundamentals", "synthetic"]
Tier = Literal["primary", "secondary", "synthetic"]
FailureCode = Literal["NETWORK", "TIMEOUT", "BAD_RESPONSE", "RATE_LIMIT", "AUTH", "NOT_FOUND", "UPSTREAM", "NO_DATA"]


class SourceClassification(str, Enum):
    """Aggregate provenance of one refresh pass."""

    FULL = "full"
    PARTIAL = "partial"
    SYNTHETIC_ONLY = "synthetic-only"
    USER_PROVIDED = "user-provided"

    @property
    def badge(self) -> str:
        return _BADGES[self]


_BADGES = {
    SourceClassification.FULL: "live",
    SourceClassification.PARTIAL: "mixed",
    SourceClassification.SYNTHETIC_ONLY: "demo",
    SourceClassification.USER_PROVIDED: "user",
}


def is_usable_price(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value) and value > 0


@dataclass(frozen=True)
class Fundamentals:
    pe_ratio: float | None = None
    latest_earnings: float | None = None
    market_cap: float | None = None

    def is_empty(self) -> bool:
        return self.pe_ratio is None and self.latest_earnings is None and self.market_cap is None

    def is_complete(self) -> bool:
        return self.pe_ratio is not None and self.latest_earnings is not None

    def merged_with(self, other: Fundamentals) -> Fundamentals:
        """Fill gaps in ``self`` from ``other`` without overwriting present values."""
        return Fundamentals(
            pe_ratio=self.pe_ratio if self.pe_ratio is not None else other.pe_ratio,
            latest_earnings=self.latest_earnings if self.latest_earnings is not None else other.latest_earnings,
            market_cap=self.market_cap if self.market_cap is not None else other.market_cap,
        )


@dataclass(frozen=True)
class Provenance:
    price_tier: Tier
    fundamentals_tier: Tier | None = None

    @property
    def mixed(self) -> bool:
        return self.fundamentals_tier is not None and self.fundamentals_tier != self.price_tier

    @property
    def label(self) -> str:
        return f"{self.price_tier}+mixed" if self.mixed else self.price_tier


@dataclass(frozen=True)
class QuoteResult:
    symbol: str
    price: float | None
    change: float = 0.0
    change_percent: float = 0.0
    fundamentals: Fundamentals = field(default_factory=Fundamentals)
    provenance: Provenance = Provenance("primary")
    adapter_id: AdapterId = "yahoo_chart"
    fetched_at: float = field(default_factory=time.time)

    @property
    def has_usable_price(self) -> bool:
        return is_usable_price(self.price)

    @property
    def is_synthetic(self) -> bool:
        return self.provenance.price_tier == "synthetic"

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "peRatio": self.fundamentals.pe_ratio,
            "latestEarnings": self.fundamentals.latest_earnings,
            "marketCap": self.fundamentals.market_cap,
            "provenance": self.provenance.label,
            "adapter": self.adapter_id,
        }


@dataclass(frozen=True)
class AdapterFailure:
    reason: str
    adapter_id: AdapterId
    code: FailureCode = "UPSTREAM"
    status: int | None = None
