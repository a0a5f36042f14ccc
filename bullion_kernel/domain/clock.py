"""
Clock -- injectable time source.

Services receive a Clock instead of calling ``datetime.now()`` so that
ledger timestamps (and therefore trail ordering) are reproducible in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""
        ...


class SystemClock(Clock):
    """Production clock; the one sanctioned read of wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock.

    ``now()`` returns the same instant until ``advance()``, ``set_time()`` or
    ``tick()`` moves it.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        if time.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware datetime")
        self._current = time

    def advance(self, seconds: int = 0, *, days: int = 0) -> None:
        self._current = self._current + timedelta(days=days, seconds=seconds)

    def tick(self) -> datetime:
        """Advance one second and return the new time."""
        self.advance(1)
        return self._current
