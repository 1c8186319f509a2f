"""
Clock -- injectable source of "now" for depreciation runs.

Services never call ``datetime.now()`` or ``date.today()`` directly.  The
period a run targets is the month of ``clock.today()`` when the caller
gives no ``as_of`` date, and ledger rows are stamped with ``clock.now()``.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` is timezone-aware (UTC).
        - ``today()`` is the UTC calendar date of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock pinned to a fixed instant.

    Runs driven month by month move it with ``move_to()``; ``advance()``
    shifts it by whole days.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def move_to(self, day: date) -> None:
        """Pin the clock to noon UTC on ``day``."""
        self._current = datetime.combine(day, time(12, 0), tzinfo=timezone.utc)

    def advance(self, days: int = 1) -> None:
        self._current += timedelta(days=days)
