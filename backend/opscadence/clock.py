"""Injectable wall-clock source.

Every "now" read by the engine goes through a Clock so occurrence math and
status sweeps can be driven deterministically in tests.
"""

from datetime import datetime, timedelta, timezone


class Clock:
    """Time source returning aware UTC datetimes."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant until moved explicitly."""

    def __init__(self, instant: datetime):
        self.set(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires an aware datetime")
        self._instant = instant.astimezone(timezone.utc)

    def advance(self, **delta) -> datetime:
        self._instant = self._instant + timedelta(**delta)
        return self._instant


system_clock = SystemClock()


def get_clock() -> Clock:
    return system_clock
