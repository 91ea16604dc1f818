"""Portfolio holdings domain package."""

from portfolio_server.portfolio.models import Holding, PortfolioSummary, SectorAggregate

__all__ = ["Holding", "PortfolioSummary", "SectorAggregate"]
