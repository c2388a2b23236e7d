import logging
import threading

from .config import DEFAULT_PROFILE_NAME
from .errors import TransientStoreFailure
from .logging_setup import get_logger
from .models import Session, UserProfile
from .session_store import SessionStore


class ProfileAggregator:
    """Sole writer of the user profile: folds finished sessions into it."""

    def __init__(self, store: SessionStore, logger: logging.Logger | None = None):
        self._store = store
        self._logger = logger or get_logger()
        self._lock = threading.RLock()
        self._profile = UserProfile()

    def load(self) -> UserProfile:
        try:
            profile = self._store.load_profile()
        except TransientStoreFailure as e:
            self._logger.warning(f"PROFILE load failed, using defaults: {e}")
            profile = None

        with self._lock:
            if profile is None:
                self._profile = UserProfile()
                self._save()
            else:
                self._profile = profile
            return self._profile.copy()

    @property
    def profile(self) -> UserProfile:
        with self._lock:
            return self._profile.copy()

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return any(s.id == session_id for s in self._profile.sessions)

    def commit(self, session: Session) -> None:
        if session.end_time is None:
            raise ValueError(f"session {session.id} is still active")

        with self._lock:
            p = self._profile
            if any(s.id == session.id for s in p.sessions):
                self._logger.warning(f"PROFILE session {session.id} already committed, ignoring")
                return
            frozen = session.copy()
            p.sessions.append(frozen)
            p.total_points += frozen.points
            p.badges.extend(frozen.badges)
            self._save()

        self._logger.info(
            f"PROFILE commit session={session.id} points={session.points} total={self._profile.total_points}"
        )

    def update_identity(self, name: str, avatar: bytes | None) -> None:
        with self._lock:
            self._profile.name = (name or "").strip() or DEFAULT_PROFILE_NAME
            self._profile.avatar = avatar
            self._save()
        self._logger.info(f"PROFILE identity name={self._profile.name} avatar={'yes' if avatar else 'no'}")

    def recent_sessions(self, limit: int | None = None) -> list[Session]:
        with self._lock:
            ordered = sorted(self._profile.sessions, key=lambda s: s.start_time, reverse=True)
            if limit is not None:
                ordered = ordered[:limit]
            return [s.copy() for s in ordered]

    def stats(self) -> dict:
        with self._lock:
            p = self._profile
            return {
                "total_points": p.total_points,
                "total_badges": len(p.badges),
                "sessions": len(p.sessions),
                "focused_sec": sum(s.duration(s.end_time) for s in p.sessions if s.end_time),
            }

    def _save(self) -> None:
        try:
            self._store.save_profile(self._profile)
        except TransientStoreFailure as e:
            self._logger.warning(f"PROFILE save failed, keeping in memory: {e}")
