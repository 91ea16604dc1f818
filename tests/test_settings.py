from portfolio_server.config import settings as settings_module
from portfolio_server.config.settings import get_settings


def test_settings_defaults(monkeypatch) -> None:
    monkeypatch.setattr(settings_module, "load_dotenv", lambda: None)
    for key in ("BATCH_SIZE", "INTER_BATCH_DELAY_SECONDS", "CACHE_TTL_QUOTE_SECONDS", "STALE_AFTER_LIVE_SECONDS"):
        monkeypatch.delenv(key, raising=False)

    settings = get_settings()

    assert settings.batch_size == 5
    assert settings.inter_batch_delay_seconds == 0.5
    assert settings.cache_ttl_quote_seconds == 120
    assert settings.stale_after_live_seconds == 300.0


def test_settings_parse_environment(monkeypatch) -> None:
    monkeypatch.setattr(settings_module, "load_dotenv", lambda: None)
    monkeypatch.setenv("PORT", "not-a-port")
    monkeypatch.setenv("BATCH_SIZE", "0")
    monkeypatch.setenv("INTER_BATCH_DELAY_SECONDS", "-2")
    monkeypatch.setenv("GOOGLE_FINANCE_ENABLED", "false")
    monkeypatch.setenv("SYNTHETIC_FALLBACK_ENABLED", "on")
    monkeypatch.setenv("LOG_LEVEL", " debug ")
    monkeypatch.setenv("PORTFOLIO_API_URL", "http://dashboard.local:9000/")

    settings = get_settings()

    assert settings.port == 8000
    assert settings.batch_size == 1
    assert settings.inter_batch_delay_seconds == 0.0
    assert settings.google_finance_enabled is False
    assert settings.synthetic_fallback_enabled is True
    assert settings.log_level == "DEBUG"
    assert settings.portfolio_api_url == "http://dashboard.local:9000"
