"""Client-side refresh scheduling driven by data staleness."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable

from portfolio_server.providers.models import SourceClassification
from portfolio_server.scheduler.preferences import MIN_REFRESH_INTERVAL_SECONDS, PreferenceStore, Preferences

LOGGER = logging.getLogger(__name__)

RefreshCallable = Callable[[bool], Awaitable[SourceClassification]]


class SchedulerState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass
class RefreshState:
    last_success: float | None = None
    last_provenance: SourceClassification | None = None
    in_flight: bool = False
    last_attempt: float | None = None
    last_error: str | None = None


@dataclass(frozen=True)
class StalenessPolicy:
    """Maximum tolerated data age, by the provenance of the last refresh.

    Trustworthy live data may age longest; synthetic data is retried soonest.
    """

    live_seconds: float = 300.0
    partial_seconds: float = 60.0
    synthetic_seconds: float = 15.0

    def threshold(self, provenance: SourceClassification | None) -> float:
        if provenance is SourceClassification.FULL:
            return self.live_seconds
        if provenance is SourceClassification.SYNTHETIC_ONLY or provenance is None:
            return self.synthetic_seconds
        return self.partial_seconds

    def is_stale(self, state: RefreshState, now: float) -> bool:
        if state.last_success is None:
            return True
        return now - state.last_success >= self.threshold(state.last_provenance)


class RefreshScheduler:
    """Two-state machine (idle, refreshing) with an optional timer task.

    A forced trigger always runs when idle. A timer tick runs only when
    auto-refresh is on and the staleness policy says the data is stale.
    Triggers while a refresh is in flight are ignored, and a started
    refresh always runs to completion, ``stop()`` included.
    """

    def __init__(
        self,
        refresh: RefreshCallable,
        policy: StalenessPolicy | None = None,
        preference_store: PreferenceStore | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._refresh = refresh
        self.policy = policy or StalenessPolicy()
        self._store = preference_store
        self.preferences = preference_store.load() if preference_store else Preferences()
        self._clock = clock
        self._sleep = sleep
        self._state = RefreshState()
        self._timer: asyncio.Task[None] | None = None
        self._current: asyncio.Task[bool] | None = None

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.REFRESHING if self._state.in_flight else SchedulerState.IDLE

    @property
    def refresh_state(self) -> RefreshState:
        return replace(self._state)

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def is_stale(self) -> bool:
        return self.policy.is_stale(self._state, self._clock())

    async def trigger(self, force: bool = False) -> bool:
        """Start a refresh if allowed. Returns whether one ran."""
        if self._state.in_flight:
            LOGGER.debug("refresh trigger ignored: already refreshing")
            return False
        if not force and not (self.preferences.auto_refresh and self.is_stale()):
            return False
        self._state.in_flight = True
        self._current = asyncio.ensure_future(self._run(bypass_cache=force))
        return await asyncio.shield(self._current)

    async def tick(self) -> bool:
        return await self.trigger(force=False)

    async def _run(self, bypass_cache: bool) -> bool:
        try:
            provenance = await self._refresh(bypass_cache)
        except Exception as error:
            LOGGER.warning("refresh failed: error=%s", error)
            self._state.last_error = str(error) or type(error).__name__
        else:
            self._state.last_success = self._clock()
            self._state.last_provenance = provenance
            self._state.last_error = None
            LOGGER.info(
                "refresh complete: provenance=%s next_due_in=%ss",
                provenance.value,
                self.policy.threshold(provenance),
            )
        finally:
            self._state.last_attempt = self._clock()
            self._state.in_flight = False
        return True

    async def _loop(self) -> None:
        while True:
            await self.tick()
            await self._sleep(self.preferences.refresh_interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._timer = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await timer
        if self._current is not None and not self._current.done():
            await self._current

    def _save(self) -> None:
        if self._store is not None:
            self._store.save(self.preferences)

    def set_auto_refresh(self, enabled: bool) -> None:
        self.preferences = replace(self.preferences, auto_refresh=enabled)
        self._save()

    def toggle_auto_refresh(self) -> bool:
        self.set_auto_refresh(not self.preferences.auto_refresh)
        return self.preferences.auto_refresh

    def set_refresh_interval(self, seconds: float) -> None:
        self.preferences = replace(self.preferences, refresh_interval_seconds=max(MIN_REFRESH_INTERVAL_SECONDS, seconds))
        self._save()

    def set_selected_sector(self, sector: str | None) -> None:
        self.preferences = replace(self.preferences, selected_sector=sector or None)
        self._save()
