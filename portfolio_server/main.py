"""Application entrypoint for the portfolio refresh server."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import time
from typing import AsyncIterator

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from portfolio_server.cache.ttl_cache import TTLCache
from portfolio_server.config.settings import Settings, get_settings
from portfolio_server.portfolio.validation import InvalidInput, validate_symbol
from portfolio_server.providers.base import SourceAdapter
from portfolio_server.providers.google_finance import GoogleFinanceAdapter
from portfolio_server.providers.synthetic import SyntheticQuoteGenerator
from portfolio_server.providers.yahoo_chart import YahooChartAdapter
from portfolio_server.providers.yahoo_fundamentals import YahooFundamentalsAdapter
from portfolio_server.runtime.monitoring import ServerMetrics, log_request_event
from portfolio_server.runtime.response import error_response, utc_timestamp
from portfolio_server.services.base import SymbolUnresolvable
from portfolio_server.services.batch_orchestrator import BatchOrchestrator
from portfolio_server.services.fallback_resolver import FallbackResolver
from portfolio_server.services.portfolio_service import PortfolioService
from portfolio_server.services.provider_status import ProviderStatus
from portfolio_server.utils.rate_limit import RateLimiterRegistry

LOGGER = logging.getLogger(__name__)
BYPASS_CACHE_HEADER = "x-bypass-cache"


def wants_cache_bypass(request: Request) -> bool:
    return (request.headers.get(BYPASS_CACHE_HEADER) or "").strip().lower() in {"1", "true", "yes"}


def build_resolver(settings: Settings) -> FallbackResolver:
    timeout = settings.request_timeout_seconds
    retries = settings.http_max_retries
    price_adapters: list[SourceAdapter] = []
    if settings.yahoo_chart_enabled:
        price_adapters.append(YahooChartAdapter(timeout, retries))
    if settings.google_finance_enabled:
        price_adapters.append(GoogleFinanceAdapter(timeout, retries))
    fundamentals_adapters: list[SourceAdapter] = []
    if settings.yahoo_fundamentals_enabled:
        fundamentals_adapters.append(YahooFundamentalsAdapter(timeout, retries))
    if not price_adapters:
        LOGGER.warning("no live price adapters enabled; every refresh will be synthetic")
    return FallbackResolver(
        price_adapters=price_adapters,
        fundamentals_adapters=fundamentals_adapters,
        synthetic=SyntheticQuoteGenerator() if settings.synthetic_fallback_enabled else None,
        provider_status=ProviderStatus(),
        rate_limiter=RateLimiterRegistry(min_interval_seconds=settings.provider_min_interval_seconds),
        rate_limit_disable_seconds=settings.rate_limit_disable_seconds,
    )


def build_service(settings: Settings) -> PortfolioService:
    cache = TTLCache(default_ttl_seconds=settings.cache_ttl_quote_seconds)
    orchestrator = BatchOrchestrator(
        resolver=build_resolver(settings),
        cache=cache,
        batch_size=settings.batch_size,
        inter_batch_delay_seconds=settings.inter_batch_delay_seconds,
        quote_ttl_seconds=settings.cache_ttl_quote_seconds,
    )
    return PortfolioService(orchestrator=orchestrator, cache=cache)


def build_app(
    settings: Settings | None = None,
    service: PortfolioService | None = None,
    server_metrics: ServerMetrics | None = None,
) -> Starlette:
    settings = settings or get_settings()
    service = service or build_service(settings)
    server_metrics = server_metrics or ServerMetrics()

    async def sweep_periodically() -> None:
        interval = max(1, settings.cache_sweep_interval_seconds)
        while True:
            await asyncio.sleep(interval)
            service.sweep_cache()

    @contextlib.asynccontextmanager
    async def lifespan(_: Starlette) -> AsyncIterator[None]:
        sweeper = asyncio.create_task(sweep_periodically())
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    async def get_portfolio(request: Request) -> Response:
        started = time.perf_counter()
        snapshot = await service.refresh(bypass_cache=wants_cache_bypass(request))
        latency_ms = (time.perf_counter() - started) * 1000.0
        server_metrics.record(
            latency_ms=latency_ms,
            success=snapshot.error is None,
            provenance=snapshot.provenance.value,
        )
        log_request_event(
            "GET",
            request.url.path,
            200,
            latency_ms,
            provenance=snapshot.provenance.value,
            warning="pipeline_error" if snapshot.error else None,
        )
        return JSONResponse(snapshot.to_envelope())

    async def post_portfolio(request: Request) -> Response:
        started = time.perf_counter()
        try:
            try:
                payload = await request.json()
            except (json.JSONDecodeError, UnicodeDecodeError) as error:
                raise InvalidInput("Request body must be valid JSON.") from error
            snapshot = await service.replace_holdings(payload)
        except InvalidInput as error:
            latency_ms = (time.perf_counter() - started) * 1000.0
            server_metrics.record(latency_ms=latency_ms, success=False)
            log_request_event("POST", request.url.path, 400, latency_ms, warning=str(error))
            return JSONResponse(
                error_response(str(error), [issue.to_dict() for issue in error.issues]),
                status_code=400,
            )
        latency_ms = (time.perf_counter() - started) * 1000.0
        server_metrics.record(latency_ms=latency_ms, success=True, provenance=snapshot.provenance.value)
        log_request_event("POST", request.url.path, 200, latency_ms, provenance=snapshot.provenance.value)
        return JSONResponse(snapshot.to_envelope())

    async def get_quote(request: Request) -> Response:
        started = time.perf_counter()
        try:
            symbol = validate_symbol(request.path_params["symbol"])
        except ValueError as error:
            latency_ms = (time.perf_counter() - started) * 1000.0
            server_metrics.record(latency_ms=latency_ms, success=False)
            log_request_event("GET", request.url.path, 400, latency_ms, warning=str(error))
            return JSONResponse(error_response(str(error)), status_code=400)

        try:
            quote, from_cache = await service.orchestrator.quote(symbol, bypass_cache=wants_cache_bypass(request))
        except SymbolUnresolvable as error:
            latency_ms = (time.perf_counter() - started) * 1000.0
            server_metrics.record(latency_ms=latency_ms, success=False)
            log_request_event("GET", request.url.path, 502, latency_ms, warning=f"failures={len(error.failures)}")
            return JSONResponse(error_response(f"No data available for {symbol}."), status_code=502)

        latency_ms = (time.perf_counter() - started) * 1000.0
        server_metrics.record(latency_ms=latency_ms, success=True)
        log_request_event("GET", request.url.path, 200, latency_ms, provenance=quote.provenance.label)
        return JSONResponse(
            {"success": True, "data": {**quote.to_dict(), "cached": from_cache}, "timestamp": utc_timestamp()}
        )

    async def health_check(_: Request) -> Response:
        health = server_metrics.snapshot()
        return JSONResponse(
            {
                "status": "ok",
                "service": settings.app_name,
                "version": settings.app_version,
                "uptime_seconds": round(health.uptime_seconds, 3),
                "total_requests": health.total_requests,
                "error_rate": health.error_rate,
                "avg_latency_ms": round(health.avg_latency_ms, 3),
                "provenance_counts": health.provenance_counts,
                "last_provenance": health.last_provenance,
                "disabled_providers": service.orchestrator.resolver.provider_status.describe(),
                "cached_entries": len(service.cache),
            }
        )

    routes = [
        Route("/portfolio", get_portfolio, methods=["GET"]),
        Route("/portfolio", post_portfolio, methods=["POST"]),
        Route("/quote/{symbol}", get_quote, methods=["GET"]),
        Route(settings.health_path, health_check, methods=["GET"]),
    ]
    return Starlette(routes=routes, lifespan=lifespan)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(build_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
