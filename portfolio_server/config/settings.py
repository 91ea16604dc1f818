"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_PREFERENCES_PATH = os.path.join(os.path.expanduser("~"), ".portfolio-dashboard", "preferences.json")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the portfolio refresh server and its client."""

    app_name: str = "portfolio-dashboard"
    app_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    health_path: str = "/health"
    log_level: str = "INFO"
    request_timeout_seconds: float = 10.0
    http_max_retries: int = 2
    provider_min_interval_seconds: float = 0.0
    rate_limit_disable_seconds: int = 60 * 15
    yahoo_chart_enabled: bool = True
    google_finance_enabled: bool = True
    yahoo_fundamentals_enabled: bool = True
    synthetic_fallback_enabled: bool = True
    batch_size: int = 5
    inter_batch_delay_seconds: float = 0.5
    cache_ttl_quote_seconds: int = 120
    cache_sweep_interval_seconds: int = 300
    stale_after_live_seconds: float = 300.0
    stale_after_partial_seconds: float = 60.0
    stale_after_synthetic_seconds: float = 15.0
    default_refresh_interval_seconds: float = 15.0
    preferences_path: str = DEFAULT_PREFERENCES_PATH
    portfolio_api_url: str = "http://127.0.0.1:8000"


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    return Settings(
        app_name=os.getenv("APP_NAME", "portfolio-dashboard"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int(os.getenv("PORT"), 8000),
        health_path=os.getenv("HEALTH_PATH", "/health"),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        request_timeout_seconds=_as_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 10.0),
        http_max_retries=_as_int(os.getenv("HTTP_MAX_RETRIES"), 2),
        provider_min_interval_seconds=_as_float(os.getenv("PROVIDER_MIN_INTERVAL_SECONDS"), 0.0),
        rate_limit_disable_seconds=_as_int(os.getenv("RATE_LIMIT_DISABLE_SECONDS"), 60 * 15),
        yahoo_chart_enabled=_as_bool(os.getenv("YAHOO_CHART_ENABLED"), True),
        google_finance_enabled=_as_bool(os.getenv("GOOGLE_FINANCE_ENABLED"), True),
        yahoo_fundamentals_enabled=_as_bool(os.getenv("YAHOO_FUNDAMENTALS_ENABLED"), True),
        synthetic_fallback_enabled=_as_bool(os.getenv("SYNTHETIC_FALLBACK_ENABLED"), True),
        batch_size=max(1, _as_int(os.getenv("BATCH_SIZE"), 5)),
        inter_batch_delay_seconds=max(0.0, _as_float(os.getenv("INTER_BATCH_DELAY_SECONDS"), 0.5)),
        cache_ttl_quote_seconds=_as_int(os.getenv("CACHE_TTL_QUOTE_SECONDS"), 120),
        cache_sweep_interval_seconds=_as_int(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS"), 300),
        stale_after_live_seconds=_as_float(os.getenv("STALE_AFTER_LIVE_SECONDS"), 300.0),
        stale_after_partial_seconds=_as_float(os.getenv("STALE_AFTER_PARTIAL_SECONDS"), 60.0),
        stale_after_synthetic_seconds=_as_float(os.getenv("STALE_AFTER_SYNTHETIC_SECONDS"), 15.0),
        default_refresh_interval_seconds=_as_float(os.getenv("DEFAULT_REFRESH_INTERVAL_SECONDS"), 15.0),
        preferences_path=os.getenv("PREFERENCES_PATH", DEFAULT_PREFERENCES_PATH),
        portfolio_api_url=os.getenv("PORTFOLIO_API_URL", "http://127.0.0.1:8000").rstrip("/"),
    )
