import os
import json
import logging
import threading
from typing import Protocol

from .config import ACTIVE_SESSION_FILE, PROFILE_FILE
from .errors import CorruptPersistedState, TransientStoreFailure
from .logging_setup import get_logger
from .models import Session, UserProfile
from .utils import ensure_dir


class SessionStore(Protocol):
    def load_active_session(self) -> Session | None: ...

    def save_active_session(self, session: Session) -> None: ...

    def clear_active_session(self) -> None: ...

    def load_profile(self) -> UserProfile | None: ...

    def save_profile(self, profile: UserProfile) -> None: ...


class JsonSessionStore:
    """Active session and profile as two JSON files in ``data_dir``.

    The active-session file exists only while a session is running or
    suspended. Loads return None for a missing or undecodable file and raise
    TransientStoreFailure when the file cannot be read at all.
    """

    def __init__(self, data_dir: str, logger: logging.Logger | None = None):
        self._dir = data_dir
        self._session_path = os.path.join(data_dir, ACTIVE_SESSION_FILE)
        self._profile_path = os.path.join(data_dir, PROFILE_FILE)
        self._logger = logger or get_logger()
        self._lock = threading.Lock()

    @property
    def active_session_path(self) -> str:
        return self._session_path

    @property
    def profile_path(self) -> str:
        return self._profile_path

    def load_active_session(self) -> Session | None:
        return self._load(self._session_path, Session)

    def save_active_session(self, session: Session) -> None:
        self._save(self._session_path, session.to_dict())

    def clear_active_session(self) -> None:
        with self._lock:
            try:
                os.remove(self._session_path)
            except FileNotFoundError:
                return
            except OSError as e:
                raise TransientStoreFailure(f"cannot remove {self._session_path}: {e}") from e

    def load_profile(self) -> UserProfile | None:
        return self._load(self._profile_path, UserProfile)

    def save_profile(self, profile: UserProfile) -> None:
        self._save(self._profile_path, profile.to_dict())

    def _load(self, path: str, model):
        with self._lock:
            if not os.path.exists(path):
                return None
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (json.JSONDecodeError, UnicodeDecodeError):
                self._logger.exception(f"STORE unreadable record {path}, treating as absent")
                return None
            except OSError as e:
                raise TransientStoreFailure(f"cannot read {path}: {e}") from e
        try:
            return model.from_dict(data)
        except CorruptPersistedState as e:
            self._logger.warning(f"STORE corrupt record {path}: {e}")
            return None

    def _save(self, path: str, data: dict) -> None:
        with self._lock:
            try:
                ensure_dir(self._dir)
                with open(path, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
            except OSError as e:
                raise TransientStoreFailure(f"cannot write {path}: {e}") from e


class MemorySessionStore:
    """Keeps records as JSON text so reads never alias the caller's objects."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: dict[str, str] = {}

    def load_active_session(self) -> Session | None:
        return self._load("session", Session)

    def save_active_session(self, session: Session) -> None:
        self._save("session", session.to_dict())

    def clear_active_session(self) -> None:
        with self._lock:
            self._records.pop("session", None)

    def load_profile(self) -> UserProfile | None:
        return self._load("profile", UserProfile)

    def save_profile(self, profile: UserProfile) -> None:
        self._save("profile", profile.to_dict())

    def put_raw(self, key: str, text: str) -> None:
        with self._lock:
            self._records[key] = text

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._records

    def _load(self, key: str, model):
        with self._lock:
            text = self._records.get(key)
        if text is None:
            return None
        try:
            return model.from_dict(json.loads(text))
        except (json.JSONDecodeError, CorruptPersistedState):
            return None

    def _save(self, key: str, data: dict) -> None:
        text = json.dumps(data, ensure_ascii=False)
        with self._lock:
            self._records[key] = text
