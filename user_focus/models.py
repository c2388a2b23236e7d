"""Session, badge and profile records.

Each record converts to and from a plain JSON-ready dict. Decoding is strict:
anything that does not look like a record written by ``to_dict`` raises
CorruptPersistedState so callers can treat it as absent.
"""

from __future__ import annotations

import base64
import binascii
import copy
import datetime
from dataclasses import dataclass, field
from enum import Enum

from .config import DEFAULT_PROFILE_NAME
from .errors import CorruptPersistedState
from .utils import from_iso, seconds_between, to_iso


class FocusMode(str, Enum):
    WORK = "Work"
    PLAY = "Play"
    REST = "Rest"
    SLEEP = "Sleep"


class BadgeCategory(str, Enum):
    TREES = "trees"
    LEAVES_AND_FUNGI = "leavesAndFungi"
    ANIMALS = "animals"

    @property
    def palette(self) -> tuple[str, ...]:
        return BADGE_PALETTES[self]


BADGE_PALETTES: dict[BadgeCategory, tuple[str, ...]] = {
    BadgeCategory.TREES: ("🌵", "🎄", "🌲", "🌳", "🌴"),
    BadgeCategory.LEAVES_AND_FUNGI: ("🍂", "🍁", "🍄"),
    BadgeCategory.ANIMALS: ("🐅", "🦅", "🐵", "🐝"),
}


def _require(data: dict, key: str, kind: type | tuple[type, ...]):
    if not isinstance(data, dict):
        raise CorruptPersistedState(f"expected object, got {type(data).__name__}")
    if key not in data:
        raise CorruptPersistedState(f"missing field {key!r}")
    value = data[key]
    # bool is an int subclass; counters must be real ints
    if isinstance(value, bool) and kind is int:
        raise CorruptPersistedState(f"field {key!r} has wrong type")
    if not isinstance(value, kind):
        raise CorruptPersistedState(f"field {key!r} has wrong type")
    return value


def _timestamp(data: dict, key: str) -> datetime.datetime:
    try:
        return from_iso(_require(data, key, str))
    except ValueError as e:
        raise CorruptPersistedState(f"field {key!r} is not a timestamp") from e


def _enum(enum_cls, value: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        raise CorruptPersistedState(f"unknown {enum_cls.__name__} {value!r}") from e


def _counter(data: dict, key: str) -> int:
    value = _require(data, key, int)
    if value < 0:
        raise CorruptPersistedState(f"field {key!r} is negative")
    return value


@dataclass(frozen=True)
class Badge:
    id: str
    emoji: str
    category: BadgeCategory
    earned_at: datetime.datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "emoji": self.emoji,
            "category": self.category.value,
            "earned_at": to_iso(self.earned_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Badge:
        return cls(
            id=_require(data, "id", str),
            emoji=_require(data, "emoji", str),
            category=_enum(BadgeCategory, _require(data, "category", str)),
            earned_at=_timestamp(data, "earned_at"),
        )


def _badges(data: dict) -> list[Badge]:
    return [Badge.from_dict(b) for b in _require(data, "badges", list)]


@dataclass
class Session:
    id: str
    mode: FocusMode
    start_time: datetime.datetime
    end_time: datetime.datetime | None = None
    points: int = 0
    badges: list[Badge] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def duration(self, now: datetime.datetime) -> float:
        end = self.end_time or now
        return max(0.0, seconds_between(self.start_time, end))

    def copy(self) -> Session:
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "mode": self.mode.value,
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time) if self.end_time else None,
            "points": self.points,
            "badges": [b.to_dict() for b in self.badges],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Session:
        end_raw = _require(data, "end_time", (str, type(None)))
        session = cls(
            id=_require(data, "id", str),
            mode=_enum(FocusMode, _require(data, "mode", str)),
            start_time=_timestamp(data, "start_time"),
            end_time=_timestamp(data, "end_time") if end_raw is not None else None,
            points=_counter(data, "points"),
            badges=_badges(data),
        )
        if session.points != len(session.badges):
            raise CorruptPersistedState(
                f"session {session.id} has {session.points} points but {len(session.badges)} badges"
            )
        return session


@dataclass
class UserProfile:
    name: str = DEFAULT_PROFILE_NAME
    avatar: bytes | None = None
    total_points: int = 0
    badges: list[Badge] = field(default_factory=list)
    sessions: list[Session] = field(default_factory=list)

    def copy(self) -> UserProfile:
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "avatar": base64.b64encode(self.avatar).decode("ascii") if self.avatar else None,
            "total_points": self.total_points,
            "badges": [b.to_dict() for b in self.badges],
            "sessions": [s.to_dict() for s in self.sessions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> UserProfile:
        avatar_raw = _require(data, "avatar", (str, type(None)))
        avatar = None
        if avatar_raw:
            try:
                avatar = base64.b64decode(avatar_raw, validate=True)
            except (binascii.Error, ValueError) as e:
                raise CorruptPersistedState("field 'avatar' is not base64") from e
        return cls(
            name=_require(data, "name", str),
            avatar=avatar,
            total_points=_counter(data, "total_points"),
            badges=_badges(data),
            sessions=[Session.from_dict(s) for s in _require(data, "sessions", list)],
        )
