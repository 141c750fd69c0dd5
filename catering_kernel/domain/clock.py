"""
Clock -- injectable time for audit timestamps.

Every ``AuditEntry``, ``StateChangeEntry`` and ``created_at`` value is read
from the Clock on the ``CommandContext``.  Domain code never calls
``datetime.now()`` or ``date.today()``; ``SystemClock`` is the only place
real time enters.

All instants are timezone-aware UTC.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        """Calendar date of ``now()``; used for report windows."""
        return self.now().date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    ``now()`` is stable until ``advance()`` moves it forward, so two audit
    entries written in one command share a timestamp and entries written
    after ``advance()`` sort strictly later.
    """

    def __init__(self, start: datetime = DEFAULT_TEST_TIME):
        if start.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware start time")
        self._current = start.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._current += timedelta(seconds=seconds)
        return self._current
