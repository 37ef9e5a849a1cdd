"""
Clock -- where "now" comes from.

The billed period is derived from ``Clock.now()``: statement and approval
services receive a clock at construction and never read the system time
themselves.  Tests pin the reference instant with ``DeterministicClock``
instead of a global simulated date.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Injectable time source.

    Guarantees:
        - ``now()`` is timezone-aware.
        - ``now_utc()`` is the same instant normalized to UTC.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)


class SystemClock(Clock):
    """Wall-clock time.  Used by every production call site."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Fixed clock for tests.

    ``now()`` returns the same instant until ``advance()``, ``tick()`` or
    ``set_time()`` moves it.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(2025, 3, 15, 18, 0, tzinfo=timezone.utc)
        self._offset = timedelta()

    def now(self) -> datetime:
        return self._fixed_time + self._offset

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time
        self._offset = timedelta()

    def advance(self, seconds: int = 1) -> None:
        self._offset += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Advance one second and return the new time."""
        self.advance(1)
        return self.now()
