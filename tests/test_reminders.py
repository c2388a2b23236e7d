"""Real-thread checks for the ticker and reminder timers; delays are kept tiny."""

import datetime
import threading

from conftest import FakeClock
from user_focus.clock import ThreadTicker
from user_focus.models import FocusMode
from user_focus.reminders import NullReminderScheduler, TimerReminderScheduler


def later(clock, seconds):
    return clock.now() + datetime.timedelta(seconds=seconds)


class TestThreadTicker:
    def test_ticks_until_cancelled(self):
        hits = []
        three = threading.Event()

        def cb():
            hits.append(1)
            if len(hits) >= 3:
                three.set()

        ticker = ThreadTicker(0.01, cb)
        ticker.start()
        assert three.wait(2.0)
        ticker.cancel()
        assert ticker.cancelled


class TestTimerReminderScheduler:
    def test_fires_notify(self, logger):
        clock = FakeClock()
        got = []
        fired = threading.Event()

        def notify(title, message):
            got.append((title, message))
            fired.set()

        scheduler = TimerReminderScheduler(notify, clock, logger)
        scheduler.schedule_upcoming(FocusMode.WORK, [later(clock, 0.01)])
        assert fired.wait(2.0)
        assert got[0][0] == "Point earned"
        assert "Work" in got[0][1]

    def test_past_fire_times_skipped(self, logger):
        clock = FakeClock()
        scheduler = TimerReminderScheduler(lambda t, m: None, clock, logger)
        scheduler.schedule_upcoming(FocusMode.REST, [later(clock, -5), later(clock, 0)])
        assert scheduler.pending == 0

    def test_cancel_all(self, logger):
        clock = FakeClock()
        got = []
        scheduler = TimerReminderScheduler(lambda t, m: got.append(t), clock, logger)
        scheduler.schedule_upcoming(FocusMode.PLAY, [later(clock, 30), later(clock, 60)])
        assert scheduler.pending == 2
        scheduler.cancel_all()
        assert scheduler.pending == 0
        assert got == []

    def test_notify_errors_swallowed(self, logger):
        clock = FakeClock()
        done = threading.Event()

        def notify(title, message):
            done.set()
            raise RuntimeError("tray gone")

        scheduler = TimerReminderScheduler(notify, clock, logger)
        scheduler.schedule_upcoming(FocusMode.SLEEP, [later(clock, 0.01)])
        assert done.wait(2.0)


class TestNullReminderScheduler:
    def test_accepts_calls(self):
        s = NullReminderScheduler()
        s.schedule_upcoming(FocusMode.WORK, [])
        s.cancel_all()
