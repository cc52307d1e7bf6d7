"""Controllable clock for tests and simulations."""

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Optional


class FixedClock:
    """
    A clock that only moves when told to.

    Pass an instance anywhere a `clock` callable is accepted.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
        self._lock = Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, days: int = 0, hours: int = 0, minutes: int = 0) -> datetime:
        with self._lock:
            self._now += timedelta(days=days, hours=hours, minutes=minutes)
            return self._now

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._now = moment
