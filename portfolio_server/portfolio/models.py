"""Typed portfolio models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

MONEY_PLACES = 2


def money(value: float) -> float:
    return round(float(value), MONEY_PLACES)


@dataclass(frozen=True)
class Holding:
    id: int
    particulars: str
    symbol: str
    purchase_price: float
    quantity: float
    investment: float
    current_price: float
    present_value: float
    gain_loss: float
    gain_loss_percent: float
    sector: str
    portfolio_weight: float = 0.0
    pe_ratio: float | None = None
    latest_earnings: float | None = None
    market_cap: float | None = None
    change: float | None = None
    change_percent: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "particulars": self.particulars,
            "symbol": self.symbol,
            "purchasePrice": self.purchase_price,
            "quantity": self.quantity,
            "investment": self.investment,
            "currentPrice": self.current_price,
            "presentValue": self.present_value,
            "gainLoss": self.gain_loss,
            "gainLossPercent": self.gain_loss_percent,
            "portfolioWeight": self.portfolio_weight,
            "sector": self.sector,
            "peRatio": self.pe_ratio,
            "latestEarnings": self.latest_earnings,
            "marketCap": self.market_cap,
            "change": self.change,
            "changePercent": self.change_percent,
        }


@dataclass
class SectorAggregate:
    """Sector totals derived from member holdings on every read."""

    sector: str
    holdings: list[Holding] = field(default_factory=list)

    @property
    def total_investment(self) -> float:
        return money(sum(holding.investment for holding in self.holdings))

    @property
    def total_present_value(self) -> float:
        return money(sum(holding.present_value for holding in self.holdings))

    @property
    def total_gain_loss(self) -> float:
        return money(self.total_present_value - self.total_investment)

    @property
    def gain_loss_percent(self) -> float:
        investment = self.total_investment
        return self.total_gain_loss / investment if investment > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sector": self.sector,
            "totalInvestment": self.total_investment,
            "totalPresentValue": self.total_present_value,
            "totalGainLoss": self.total_gain_loss,
            "gainLossPercent": self.gain_loss_percent,
            "holdingIds": [holding.id for holding in self.holdings],
        }


@dataclass(frozen=True)
class PortfolioSummary:
    total_investment: float
    total_present_value: float
    total_gain_loss: float
    total_gain_loss_percent: float
    total_holdings: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalInvestment": self.total_investment,
            "totalPresentValue": self.total_present_value,
            "totalGainLoss": self.total_gain_loss,
            "totalGainLossPercent": self.total_gain_loss_percent,
            "totalHoldings": self.total_holdings,
        }
