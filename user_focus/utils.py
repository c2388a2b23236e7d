import os
import datetime


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def format_elapsed(seconds: float) -> str:
    """Clock-style elapsed time: MM:SS under an hour, HH:MM:SS from an hour up."""
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


def format_duration(seconds: float) -> str:
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m = rem // 60
    if h > 0:
        return f"{h}h {m}m"
    return f"{m}m"


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def to_iso(ts: datetime.datetime) -> str:
    return ts.isoformat()


def from_iso(text: str) -> datetime.datetime:
    ts = datetime.datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=datetime.timezone.utc)
    return ts


def seconds_between(start: datetime.datetime, end: datetime.datetime) -> float:
    return (end - start).total_seconds()
