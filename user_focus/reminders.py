import datetime
import logging
import threading
from typing import Callable, Protocol, Sequence

from .clock import Clock, SystemClock
from .logging_setup import get_logger
from .models import FocusMode
from .utils import seconds_between


class ReminderScheduler(Protocol):
    def schedule_upcoming(self, mode: FocusMode, next_fire_times: Sequence[datetime.datetime]) -> None: ...

    def cancel_all(self) -> None: ...


class NullReminderScheduler:
    def schedule_upcoming(self, mode: FocusMode, next_fire_times: Sequence[datetime.datetime]) -> None:
        return None

    def cancel_all(self) -> None:
        return None


def reminder_text(mode: FocusMode) -> tuple[str, str]:
    return "Point earned", f"Keep going! You earned a new badge in {mode.value} mode."


class TimerReminderScheduler:
    """One threading.Timer per fire time; each calls ``notify(title, message)``."""

    def __init__(
        self,
        notify: Callable[[str, str], None],
        clock: Clock | None = None,
        logger: logging.Logger | None = None,
    ):
        self._notify = notify
        self._clock = clock or SystemClock()
        self._logger = logger or get_logger()
        self._lock = threading.Lock()
        self._timers: list[threading.Timer] = []

    def schedule_upcoming(self, mode: FocusMode, next_fire_times: Sequence[datetime.datetime]) -> None:
        now = self._clock.now()
        title, message = reminder_text(mode)
        with self._lock:
            for fire_at in next_fire_times:
                delay = seconds_between(now, fire_at)
                if delay <= 0:
                    continue
                t = threading.Timer(delay, self._fire, args=(title, message))
                t.daemon = True
                self._timers.append(t)
                t.start()
            pending = len(self._timers)
        self._logger.info(f"REMINDER scheduled mode={mode.value} pending={pending}")

    def cancel_all(self) -> None:
        with self._lock:
            timers = self._timers
            self._timers = []
        for t in timers:
            t.cancel()

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for t in self._timers if t.is_alive())

    def _fire(self, title: str, message: str) -> None:
        try:
            self._notify(title, message)
        except Exception:
            self._logger.exception("REMINDER notify failed")
