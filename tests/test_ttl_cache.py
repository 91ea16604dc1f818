from portfolio_server.cache.ttl_cache import TTLCache, cache_key


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_cache_key_normalizes_symbol() -> None:
    assert cache_key("  infy ", "quote") == "INFY:quote"


def test_entry_is_served_until_ttl_elapses() -> None:
    clock = FakeClock()
    cache = TTLCache(default_ttl_seconds=60, clock=clock)
    cache.set("INFY:quote", "value", ttl_seconds=10)

    clock.now += 9.9
    assert cache.get("INFY:quote") == "value"

    clock.now += 0.1
    assert cache.get("INFY:quote") is None
    assert len(cache) == 0


def test_default_ttl_applies_when_not_given() -> None:
    clock = FakeClock()
    cache = TTLCache(default_ttl_seconds=120, clock=clock)
    cache.set("TCS:quote", 1)
    clock.now += 119
    assert cache.get("TCS:quote") == 1
    clock.now += 1
    assert cache.get("TCS:quote") is None


def test_sweep_drops_only_expired_entries() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("A:quote", 1, ttl_seconds=5)
    cache.set("B:quote", 2, ttl_seconds=50)
    clock.now += 10

    assert cache.sweep() == 1
    assert len(cache) == 1
    assert cache.get("B:quote") == 2


def test_invalidate_all_clears_everything() -> None:
    cache = TTLCache()
    cache.set("A:quote", 1)
    cache.set("B:quote", 2)
    cache.invalidate_all()
    assert len(cache) == 0
    assert cache.get("A:quote") is None
