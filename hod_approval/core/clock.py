# hod_approval/core/clock.py

from datetime import datetime, timedelta, timezone


def ensure_aware(value: datetime) -> datetime:
    """
    Normalize to UTC. SQLite hands back naive datetimes and drops offsets on
    write, so anything stored must already be in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock:
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock(Clock):
    """Deterministic clock for tests and replays. Only moves when told to."""

    def __init__(self, at: datetime):
        self._now = ensure_aware(at)

    def now(self) -> datetime:
        return self._now

    def set(self, at: datetime) -> None:
        self._now = ensure_aware(at)

    def advance(self, **delta) -> None:
        self._now = self._now + timedelta(**delta)


system_clock = SystemClock()
