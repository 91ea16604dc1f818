import asyncio
import json

from portfolio_server.providers.models import SourceClassification
from portfolio_server.scheduler.preferences import PreferenceStore, Preferences
from portfolio_server.scheduler.refresh_scheduler import RefreshScheduler, SchedulerState, StalenessPolicy


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeRefresh:
    def __init__(self, provenance=SourceClassification.FULL, error: Exception | None = None) -> None:
        self.provenance = provenance
        self.error = error
        self.calls: list[bool] = []
        self.gate: asyncio.Event | None = None

    async def __call__(self, bypass_cache: bool) -> SourceClassification:
        self.calls.append(bypass_cache)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.provenance


def test_staleness_thresholds_by_provenance() -> None:
    policy = StalenessPolicy()
    assert policy.threshold(SourceClassification.FULL) == 300.0
    assert policy.threshold(SourceClassification.PARTIAL) == 60.0
    assert policy.threshold(SourceClassification.USER_PROVIDED) == 60.0
    assert policy.threshold(SourceClassification.SYNTHETIC_ONLY) == 15.0
    assert policy.threshold(None) == 15.0


def test_forced_trigger_bypasses_cache_and_records_success() -> None:
    clock = FakeClock()
    refresh = FakeRefresh(SourceClassification.PARTIAL)
    scheduler = RefreshScheduler(refresh, clock=clock)

    assert scheduler.is_stale() is True
    assert asyncio.run(scheduler.trigger(force=True)) is True

    state = scheduler.refresh_state
    assert refresh.calls == [True]
    assert state.last_success == 100.0
    assert state.last_provenance is SourceClassification.PARTIAL
    assert scheduler.state is SchedulerState.IDLE


def test_tick_runs_only_when_data_is_stale() -> None:
    clock = FakeClock()
    refresh = FakeRefresh(SourceClassification.FULL)
    scheduler = RefreshScheduler(refresh, clock=clock)
    asyncio.run(scheduler.trigger(force=True))

    clock.now += 299
    assert asyncio.run(scheduler.tick()) is False

    clock.now += 1
    assert asyncio.run(scheduler.tick()) is True
    assert refresh.calls == [True, False]


def test_tick_does_nothing_with_auto_refresh_off() -> None:
    refresh = FakeRefresh()
    scheduler = RefreshScheduler(refresh, clock=FakeClock())
    scheduler.set_auto_refresh(False)

    assert asyncio.run(scheduler.tick()) is False
    assert asyncio.run(scheduler.trigger(force=True)) is True
    assert refresh.calls == [True]


def test_trigger_is_ignored_while_refreshing() -> None:
    refresh = FakeRefresh()
    scheduler = RefreshScheduler(refresh, clock=FakeClock())

    async def scenario():
        refresh.gate = asyncio.Event()
        first = asyncio.create_task(scheduler.trigger(force=True))
        await asyncio.sleep(0)
        assert scheduler.state is SchedulerState.REFRESHING
        second = await scheduler.trigger(force=True)
        refresh.gate.set()
        return await first, second

    assert asyncio.run(scenario()) == (True, False)
    assert len(refresh.calls) == 1
    assert scheduler.state is SchedulerState.IDLE


def test_failed_refresh_records_error_and_returns_to_idle() -> None:
    refresh = FakeRefresh(error=RuntimeError("server unreachable"))
    scheduler = RefreshScheduler(refresh, clock=FakeClock())

    assert asyncio.run(scheduler.trigger(force=True)) is True

    state = scheduler.refresh_state
    assert state.last_error == "server unreachable"
    assert state.last_success is None
    assert state.last_attempt == 100.0
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.is_stale() is True


def test_stop_waits_for_in_flight_refresh() -> None:
    refresh = FakeRefresh()
    scheduler = RefreshScheduler(refresh, clock=FakeClock())

    async def scenario():
        refresh.gate = asyncio.Event()
        trigger = asyncio.create_task(scheduler.trigger(force=True))
        await asyncio.sleep(0)
        stopping = asyncio.create_task(scheduler.stop())
        await asyncio.sleep(0)
        assert not stopping.done()
        refresh.gate.set()
        await stopping
        await trigger

    asyncio.run(scenario())
    assert scheduler.refresh_state.last_success == 100.0


def test_timer_loop_ticks_then_sleeps_for_interval() -> None:
    refresh = FakeRefresh()
    delays: list[float] = []

    async def blocking_sleep(seconds: float) -> None:
        delays.append(seconds)
        await asyncio.Event().wait()

    scheduler = RefreshScheduler(refresh, clock=FakeClock(), sleep=blocking_sleep)

    async def scenario():
        scheduler.start()
        assert scheduler.running is True
        for _ in range(10):
            await asyncio.sleep(0)
        await scheduler.stop()

    asyncio.run(scenario())
    assert refresh.calls == [False]
    assert delays == [15.0]
    assert scheduler.running is False


def test_preferences_persist_across_schedulers(tmp_path) -> None:
    path = str(tmp_path / "prefs" / "preferences.json")
    scheduler = RefreshScheduler(FakeRefresh(), preference_store=PreferenceStore(path))

    scheduler.set_refresh_interval(0.2)
    assert scheduler.toggle_auto_refresh() is False
    scheduler.set_selected_sector("Tech Sector")

    reloaded = PreferenceStore(path).load()
    assert reloaded == Preferences(auto_refresh=False, refresh_interval_seconds=1.0, selected_sector="Tech Sector")
    assert RefreshScheduler(FakeRefresh(), preference_store=PreferenceStore(path)).preferences == reloaded


def test_preference_store_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "preferences.json"
    defaults = Preferences(refresh_interval_seconds=30.0)
    store = PreferenceStore(str(path), defaults=defaults)

    assert store.load() == defaults

    path.write_text("{broken", encoding="utf-8")
    assert store.load() == defaults

    path.write_text(json.dumps({"auto_refresh": "yes", "refresh_interval_seconds": 0.5, "selected_sector": "Power"}))
    assert store.load() == Preferences(auto_refresh=True, refresh_interval_seconds=30.0, selected_sector="Power")
