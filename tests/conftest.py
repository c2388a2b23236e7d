import datetime
import logging
import random

import pytest

from user_focus.controller import SessionController
from user_focus.errors import TransientStoreFailure
from user_focus.profile import ProfileAggregator
from user_focus.rewards import RewardEngine
from user_focus.session_store import MemorySessionStore

T0 = datetime.datetime(2026, 3, 6, 9, 0, 0, tzinfo=datetime.timezone.utc)
INTERVAL = 120


class FakeClock:
    def __init__(self, start: datetime.datetime = T0):
        self.current = start

    def now(self) -> datetime.datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += datetime.timedelta(seconds=seconds)

    def set(self, ts: datetime.datetime) -> None:
        self.current = ts


class ManualTicker:
    def __init__(self, interval_sec, callback):
        self.interval_sec = interval_sec
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled:
            self.callback()


class ManualTickerFactory:
    def __init__(self):
        self.tickers: list[ManualTicker] = []

    def __call__(self, interval_sec, callback):
        t = ManualTicker(interval_sec, callback)
        self.tickers.append(t)
        return t

    @property
    def live(self) -> list[ManualTicker]:
        return [t for t in self.tickers if t.started and not t.cancelled]

    def fire(self):
        for t in self.live:
            t.fire()


class RecordingScheduler:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.scheduled = []
        self.cancels = 0

    def schedule_upcoming(self, mode, next_fire_times):
        if self.fail:
            raise RuntimeError("notification service unavailable")
        self.scheduled.append((mode, list(next_fire_times)))

    def cancel_all(self):
        if self.fail:
            raise RuntimeError("notification service unavailable")
        self.cancels += 1


class FlakyStore(MemorySessionStore):
    def __init__(self):
        super().__init__()
        self.fail_saves = False
        self.fail_loads = False
        self.fail_clears = False
        self.session_saves = 0

    def save_active_session(self, session):
        if self.fail_saves:
            raise TransientStoreFailure("disk full")
        self.session_saves += 1
        super().save_active_session(session)

    def save_profile(self, profile):
        if self.fail_saves:
            raise TransientStoreFailure("disk full")
        super().save_profile(profile)

    def load_active_session(self):
        if self.fail_loads:
            raise TransientStoreFailure("device not ready")
        return super().load_active_session()

    def clear_active_session(self):
        if self.fail_clears:
            raise TransientStoreFailure("file locked")
        super().clear_active_session()


@pytest.fixture
def logger():
    return logging.getLogger("UserFocus.tests")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tickers():
    return ManualTickerFactory()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def rewards(clock):
    return RewardEngine(rng=random.Random(1234), clock=clock)


@pytest.fixture
def make_controller(store, clock, tickers, scheduler, rewards, logger):
    def _make(**kwargs):
        profile = ProfileAggregator(store, logger)
        profile.load()
        params = dict(
            store=store,
            profile=profile,
            reminders=scheduler,
            rewards=rewards,
            clock=clock,
            ticker_factory=tickers,
            logger=logger,
            interval_sec=INTERVAL,
        )
        params.update(kwargs)
        return SessionController(**params)

    return _make


@pytest.fixture
def controller(make_controller):
    return make_controller()


def run_live(clock: FakeClock, tickers: ManualTickerFactory, seconds: int) -> None:
    """Advance the clock one second at a time, delivering a tick after each step."""
    for _ in range(seconds):
        clock.advance(1)
        tickers.fire()
