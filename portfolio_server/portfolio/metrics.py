"""Derived-metric recomputation for holdings, sectors and the summary.

Every function here is pure. ``apply`` runs in two passes: per-holding price
updates, then portfolio-wide weights. Weights, sectors and the summary are
functions of the whole updated set, so they are rebuilt from scratch on each
call.
"""

from __future__ import annotations

import dataclasses
from typing import Iterable, Sequence

from portfolio_server.portfolio.models import Holding, PortfolioSummary, SectorAggregate, money
from portfolio_server.providers.models import QuoteResult, is_usable_price

UNCLASSIFIED_SECTOR = "Unclassified"


def create_holding(
    id: int,
    particulars: str,
    symbol: str,
    purchase_price: float,
    quantity: float,
    sector: str = UNCLASSIFIED_SECTOR,
    current_price: float | None = None,
    pe_ratio: float | None = None,
    latest_earnings: float | None = None,
    market_cap: float | None = None,
) -> Holding:
    """Build a holding with investment fixed from cost basis."""
    investment = money(purchase_price * quantity)
    price = money(current_price if current_price is not None else purchase_price)
    holding = Holding(
        id=id,
        particulars=particulars,
        symbol=symbol.strip().upper(),
        purchase_price=float(purchase_price),
        quantity=float(quantity),
        investment=investment,
        current_price=price,
        present_value=0.0,
        gain_loss=0.0,
        gain_loss_percent=0.0,
        sector=sector or UNCLASSIFIED_SECTOR,
        pe_ratio=pe_ratio,
        latest_earnings=latest_earnings,
        market_cap=market_cap,
    )
    return _reprice(holding, price)


def _reprice(holding: Holding, price: float) -> Holding:
    current_price = money(price)
    present_value = money(current_price * holding.quantity)
    gain_loss = money(present_value - holding.investment)
    gain_loss_percent = gain_loss / holding.investment if holding.investment > 0 else 0.0
    return dataclasses.replace(
        holding,
        current_price=current_price,
        present_value=present_value,
        gain_loss=gain_loss,
        gain_loss_percent=gain_loss_percent,
    )


def _merge_update(holding: Holding, update: QuoteResult) -> Holding:
    repriced = _reprice(holding, update.price)
    fundamentals = update.fundamentals
    return dataclasses.replace(
        repriced,
        pe_ratio=fundamentals.pe_ratio if fundamentals.pe_ratio is not None else holding.pe_ratio,
        latest_earnings=(
            fundamentals.latest_earnings if fundamentals.latest_earnings is not None else holding.latest_earnings
        ),
        market_cap=fundamentals.market_cap if fundamentals.market_cap is not None else holding.market_cap,
        change=money(update.change),
        change_percent=update.change_percent,
    )


def reweight(holdings: Sequence[Holding]) -> list[Holding]:
    total = sum(holding.present_value for holding in holdings)
    if total <= 0:
        return [dataclasses.replace(holding, portfolio_weight=0.0) for holding in holdings]
    return [dataclasses.replace(holding, portfolio_weight=holding.present_value / total) for holding in holdings]


def apply(holdings: Sequence[Holding], updates: Iterable[QuoteResult]) -> list[Holding]:
    by_symbol = {
        update.symbol.strip().upper(): update for update in updates if is_usable_price(update.price)
    }
    repriced: list[Holding] = []
    for holding in holdings:
        update = by_symbol.get(holding.symbol.strip().upper())
        repriced.append(_merge_update(holding, update) if update else holding)
    return reweight(repriced)


def recompute(holdings: Sequence[Holding]) -> list[Holding]:
    """Apply a self-update at each holding's own current price."""
    return reweight([_reprice(holding, holding.current_price) for holding in holdings])


def build_sectors(holdings: Sequence[Holding]) -> list[SectorAggregate]:
    sectors: dict[str, SectorAggregate] = {}
    for holding in holdings:
        aggregate = sectors.get(holding.sector)
        if aggregate is None:
            aggregate = sectors[holding.sector] = SectorAggregate(sector=holding.sector)
        aggregate.holdings.append(holding)
    return list(sectors.values())


def summarize(holdings: Sequence[Holding]) -> PortfolioSummary:
    total_investment = money(sum(holding.investment for holding in holdings))
    total_present_value = money(sum(holding.present_value for holding in holdings))
    total_gain_loss = money(total_present_value - total_investment)
    return PortfolioSummary(
        total_investment=total_investment,
        total_present_value=total_present_value,
        total_gain_loss=total_gain_loss,
        total_gain_loss_percent=total_gain_loss / total_investment if total_investment > 0 else 0.0,
        total_holdings=len(holdings),
    )
