"""
Clock -- where "now" comes from.

Services default banking dates, application dates, pool join times and
record timestamps from an injected Clock.  Engines never ask for the time;
every date they need arrives as an argument.

SystemClock is the only place in the package that reads the wall clock.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

DEFAULT_TEST_INSTANT = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class Clock(ABC):
    """Source of timezone-aware UTC instants."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Clock frozen at a chosen instant.

    Time moves only through ``advance()`` or ``set_time()``, which lets
    tests order pool joins and record creation explicitly.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time if fixed_time is not None else DEFAULT_TEST_INSTANT

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)
