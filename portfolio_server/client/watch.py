"""Headless dashboard client: keeps a portfolio fresh on a staleness schedule."""

from __future__ import annotations

import asyncio
import logging

from portfolio_server.client.api_client import PortfolioApiClient
from portfolio_server.config.settings import Settings, get_settings
from portfolio_server.providers.models import SourceClassification
from portfolio_server.scheduler.preferences import PreferenceStore, Preferences
from portfolio_server.scheduler.refresh_scheduler import RefreshScheduler, StalenessPolicy

LOGGER = logging.getLogger(__name__)


def build_scheduler(settings: Settings, client: PortfolioApiClient) -> RefreshScheduler:
    store = PreferenceStore(
        settings.preferences_path,
        defaults=Preferences(refresh_interval_seconds=settings.default_refresh_interval_seconds),
    )
    policy = StalenessPolicy(
        live_seconds=settings.stale_after_live_seconds,
        partial_seconds=settings.stale_after_partial_seconds,
        synthetic_seconds=settings.stale_after_synthetic_seconds,
    )

    async def refresh(bypass_cache: bool) -> SourceClassification:
        provenance = await client.refresh(bypass_cache)
        summary = ((client.latest or {}).get("data") or {}).get("summary") or {}
        LOGGER.info(
            "portfolio: badge=%s present_value=%s gain_loss=%s holdings=%s",
            provenance.badge,
            summary.get("totalPresentValue"),
            summary.get("totalGainLoss"),
            summary.get("totalHoldings"),
        )
        return provenance

    return RefreshScheduler(refresh, policy=policy, preference_store=store)


async def run() -> None:
    settings = get_settings()
    client = PortfolioApiClient(settings.portfolio_api_url)
    scheduler = build_scheduler(settings, client)
    await scheduler.trigger(force=True)
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        LOGGER.info("watcher stopped")


if __name__ == "__main__":
    main()
