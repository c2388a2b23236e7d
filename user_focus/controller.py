"""Focus session state machine.

The controller owns at most one active session. Every path that can owe
awards (the live tick, resume, restore and the final pass in stop) goes
through ``_reconcile``, which derives the due count from wall-clock elapsed
time and the session's own point counter, so the count stays exact no
matter how long the process was away.
"""

from __future__ import annotations

import datetime
import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .clock import Clock, SystemClock, ThreadTicker, Ticker, TickerFactory
from .config import (
    POINTS_INTERVAL_SEC,
    REMINDER_LOOKAHEAD,
    STALE_SESSION_MAX_AGE_SEC,
    TICK_INTERVAL_SEC,
)
from .errors import TransientStoreFailure
from .logging_setup import get_logger
from .models import Badge, FocusMode, Session, UserProfile
from .profile import ProfileAggregator
from .reminders import NullReminderScheduler, ReminderScheduler
from .rewards import RewardEngine
from .session_store import SessionStore
from .utils import format_elapsed, seconds_between


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"


@dataclass(frozen=True)
class FocusSnapshot:
    state: SessionState
    current_mode: FocusMode | None
    elapsed_sec: float
    elapsed_text: str
    is_active: bool
    session: Session | None
    profile: UserProfile


class SessionController:
    def __init__(
        self,
        store: SessionStore,
        profile: ProfileAggregator | None = None,
        reminders: ReminderScheduler | None = None,
        rewards: RewardEngine | None = None,
        clock: Clock | None = None,
        ticker_factory: TickerFactory | None = None,
        logger: logging.Logger | None = None,
        interval_sec: float = POINTS_INTERVAL_SEC,
        tick_interval_sec: float = TICK_INTERVAL_SEC,
        stale_after_sec: float = STALE_SESSION_MAX_AGE_SEC,
        reminder_lookahead: int = REMINDER_LOOKAHEAD,
        on_update: Callable[[FocusSnapshot], None] | None = None,
        on_award: Callable[[list[Badge]], None] | None = None,
    ):
        if interval_sec <= 0:
            raise ValueError(f"interval must be positive, got {interval_sec}")

        self._store = store
        self._logger = logger or get_logger()
        self._clock = clock or SystemClock()
        if profile is None:
            profile = ProfileAggregator(store, self._logger)
            profile.load()
        self._profile = profile
        self._reminders = reminders or NullReminderScheduler()
        self._rewards = rewards or RewardEngine(clock=self._clock)
        self._ticker_factory = ticker_factory or ThreadTicker

        self._interval = float(interval_sec)
        self._tick_interval = float(tick_interval_sec)
        self._stale_after = float(stale_after_sec)
        self._lookahead = int(reminder_lookahead)

        self.on_update = on_update
        self.on_award = on_award

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session: Session | None = None
        self._elapsed = 0.0
        self._suspended_at: datetime.datetime | None = None
        self._persist_pending = False
        self._clear_pending = False

        self._ticker: Ticker | None = None
        self._tick_generation = 0

    # ---- Read-only observation ----

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._session is not None

    @property
    def current_mode(self) -> FocusMode | None:
        s = self._session
        return s.mode if s else None

    @property
    def elapsed_sec(self) -> float:
        return self._elapsed

    @property
    def elapsed_text(self) -> str:
        return format_elapsed(self._elapsed)

    @property
    def current_session(self) -> Session | None:
        with self._lock:
            return self._session.copy() if self._session else None

    @property
    def user_profile(self) -> UserProfile:
        return self._profile.profile

    @property
    def profile(self) -> ProfileAggregator:
        return self._profile

    @property
    def interval_sec(self) -> float:
        return self._interval

    def snapshot(self) -> FocusSnapshot:
        with self._lock:
            return FocusSnapshot(
                state=self._state,
                current_mode=self.current_mode,
                elapsed_sec=self._elapsed,
                elapsed_text=self.elapsed_text,
                is_active=self.is_active,
                session=self.current_session,
                profile=self.user_profile,
            )

    # ---- Transitions ----

    def start(self, mode: FocusMode | str) -> Session:
        mode = FocusMode(mode)
        with self._lock:
            if self._session is not None:
                self._logger.info(f"SESSION start while {self._state.value}, stopping current first")
                self._stop_locked()

            self._session = Session(
                id=uuid.uuid4().hex,
                mode=mode,
                start_time=self._clock.now(),
            )
            self._elapsed = 0.0
            self._suspended_at = None
            self._state = SessionState.RUNNING
            self._persist()
            self._start_ticker()
            self._schedule_reminders()
            session = self._session.copy()

        self._logger.info(f"SESSION start mode={mode.value} id={session.id}")
        self._emit_update()
        return session

    def stop(self) -> Session | None:
        with self._lock:
            finished = self._stop_locked()
        if finished is not None:
            self._emit_update()
        return finished

    def _stop_locked(self) -> Session | None:
        if self._session is None:
            return None

        self._cancel_ticker()
        session = self._session
        session.end_time = self._clock.now()
        self._reconcile(session.end_time, notify=False)
        # an ended record is discarded by restore() if the clear below fails
        self._persist()

        self._state = SessionState.COMPLETED
        self._profile.commit(session)

        self._session = None
        self._suspended_at = None
        self._persist_pending = False
        self._state = SessionState.IDLE
        self._clear_active_record()
        self._cancel_reminders()
        finished = session.copy()

        self._logger.info(
            f"SESSION stop id={finished.id} mode={finished.mode.value} "
            f"points={finished.points} duration={finished.duration(finished.end_time):.1f}"
        )
        return finished

    def suspend(self) -> None:
        with self._lock:
            if self._state is not SessionState.RUNNING:
                return
            self._cancel_ticker()
            self._suspended_at = self._clock.now()
            self._state = SessionState.SUSPENDED
            self._persist()
            points = self._session.points

        self._logger.info(f"SESSION suspend points={points}")
        self._emit_update()

    def resume(self) -> None:
        with self._lock:
            if self._state is not SessionState.SUSPENDED:
                return
            now = self._clock.now()
            if self._suspended_at is not None:
                self._logger.info(f"SESSION resume after {seconds_between(self._suspended_at, now):.1f}s away")
            self._resume_at(now, notify=True)

        self._emit_update()

    def restore(self) -> Session | None:
        """Pick up a session persisted by a previous process, if still fresh."""
        with self._lock:
            if self._session is not None:
                if self._state is SessionState.SUSPENDED:
                    self._resume_at(self._clock.now(), notify=True)
                return self._session.copy()

            if self._clear_pending:
                self._clear_active_record()

            try:
                stored = self._store.load_active_session()
            except TransientStoreFailure as e:
                self._logger.warning(f"SESSION restore failed to load, staying idle: {e}")
                return None

            if stored is None:
                return None

            now = self._clock.now()
            age = seconds_between(stored.start_time, now)
            ended = stored.end_time is not None
            committed = self._profile.has_session(stored.id)
            if ended or committed or age > self._stale_after:
                self._logger.info(
                    f"SESSION discard stale id={stored.id} age={age:.0f}s ended={ended} committed={committed}"
                )
                self._clear_active_record()
                return None

            self._session = stored
            self._state = SessionState.SUSPENDED
            self._suspended_at = None
            self._logger.info(f"SESSION restore id={stored.id} mode={stored.mode.value} points={stored.points}")
            self._resume_at(now, notify=False)
            session = self._session.copy()

        self._emit_update()
        return session

    def update_identity(self, name: str, avatar: bytes | None) -> None:
        self._profile.update_identity(name, avatar)
        self._emit_update()

    # ---- Ticking ----

    def _start_ticker(self) -> None:
        self._cancel_ticker()
        generation = self._tick_generation
        self._ticker = self._ticker_factory(self._tick_interval, lambda: self._on_tick(generation))
        self._ticker.start()

    def _cancel_ticker(self) -> None:
        # bump first so a tick already in flight sees it is stale
        self._tick_generation += 1
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    def _on_tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._tick_generation or self._state is not SessionState.RUNNING:
                return
            self._reconcile(self._clock.now(), notify=True)
        self._emit_update()

    # ---- Reconciliation ----

    def _resume_at(self, now: datetime.datetime, notify: bool) -> None:
        self._reconcile(now, notify=notify)
        self._suspended_at = None
        self._state = SessionState.RUNNING
        self._persist()
        self._start_ticker()
        self._cancel_reminders()
        self._schedule_reminders()

    def _reconcile(self, reference: datetime.datetime, notify: bool) -> list[Badge]:
        session = self._session
        elapsed = seconds_between(session.start_time, reference)
        due = self._rewards.compute_due_awards(self._interval, elapsed, session.points)

        minted: list[Badge] = []
        if due > 0:
            minted = self._rewards.mint_badges(due)
            session.badges.extend(minted)
            session.points += due
            self._logger.info(f"SESSION award due={due} points={session.points} elapsed={elapsed:.1f}")
            self._persist()
        elif self._persist_pending:
            self._persist()

        self._elapsed = max(0.0, elapsed)

        if minted and notify and self.on_award is not None:
            try:
                self.on_award(list(minted))
            except Exception:
                self._logger.exception("SESSION on_award listener failed")
        return minted

    # ---- Collaborators ----

    def _persist(self) -> None:
        try:
            self._store.save_active_session(self._session)
            self._persist_pending = False
            # the saved record replaced whatever an earlier failed clear left behind
            self._clear_pending = False
        except TransientStoreFailure as e:
            self._persist_pending = True
            self._logger.warning(f"SESSION save failed, will retry: {e}")

    def _clear_active_record(self) -> None:
        try:
            self._store.clear_active_session()
            self._clear_pending = False
        except TransientStoreFailure as e:
            self._clear_pending = True
            self._logger.warning(f"SESSION clear failed, will retry: {e}")

    def _schedule_reminders(self) -> None:
        s = self._session
        times = self._rewards.upcoming_award_times(s.start_time, self._interval, s.points, self._lookahead)
        try:
            self._reminders.schedule_upcoming(s.mode, times)
        except Exception:
            self._logger.exception("REMINDER schedule failed")

    def _cancel_reminders(self) -> None:
        try:
            self._reminders.cancel_all()
        except Exception:
            self._logger.exception("REMINDER cancel failed")

    def _emit_update(self) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(self.snapshot())
        except Exception:
            self._logger.exception("SESSION on_update listener failed")
