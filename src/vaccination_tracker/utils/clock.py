"""
Clock port.

Services that need "now" receive a `Clock` instead of calling `datetime.now()` so tests can
pin the current time. Pure scheduling functions never touch a clock; they take `today` as
an argument.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        ...


class SystemClock:
    """Wall-clock time in UTC; `today()` is the UTC date of `now()`."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """
    Clock frozen at a given instant, advanced explicitly.

    Args:
        current: The instant to report. Naive datetimes are treated as UTC; a plain `date`
            means midnight UTC of that day.
    """

    def __init__(self, current: Optional[datetime] = None):
        if current is None:
            current = datetime.now(timezone.utc)
        self._current = _as_aware(current)

    def now(self) -> datetime:
        return self._current

    def today(self) -> date:
        return self._current.date()

    def set(self, current: datetime) -> None:
        self._current = _as_aware(current)

    def advance(self, delta: timedelta) -> None:
        self._current = self._current + delta


def _as_aware(value) -> datetime:
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
