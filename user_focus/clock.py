import datetime
import threading
from typing import Callable, Protocol

from .utils import utc_now


class Clock(Protocol):
    def now(self) -> datetime.datetime: ...


class SystemClock:
    def now(self) -> datetime.datetime:
        return utc_now()


class Ticker(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TickerFactory = Callable[[float, Callable[[], None]], Ticker]


class ThreadTicker:
    """Calls ``callback`` every ``interval_sec`` on a daemon thread until cancelled.

    A ticker runs once; to tick again after ``cancel`` build a new one.
    ``cancel`` does not join the thread: a callback already in flight may
    still run, so callers must tolerate one late tick.
    """

    def __init__(self, interval_sec: float, callback: Callable[[], None], name: str = "UserFocusTicker"):
        self._interval = float(interval_sec)
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stop_event.set()

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self._callback()
