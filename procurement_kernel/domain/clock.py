"""
Clock -- injectable source of time.

The orchestrator takes every timestamp it writes (request creation, stage
changes, ledger events, withdrawal) from the Clock it was built with and
never calls ``datetime.now()`` itself.  Tests pass a DeterministicClock so
event ordering and ``created_at`` values are reproducible.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Returns timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen time that moves only when told to.

    ``now()`` returns the same instant until ``advance``, ``tick`` or
    ``set_time`` is called.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, moment: datetime) -> None:
        self._current = moment

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Advance one second and return the new instant."""
        self.advance(1)
        return self._current
