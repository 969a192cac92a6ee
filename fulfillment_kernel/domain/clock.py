"""
Clock -- injectable time source for ledger timestamps.

Responsibility:
    ``FulfillmentService`` stamps each item ledger entry with
    ``clock.now()``.  Engines never read the time; stats and rollups are
    pure functions of the orders they receive.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only place the fulfillment
    packages read wall-clock time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Fixed clock for tests and replays.

    ``now()`` is stable until ``advance()`` moves it forward, so ledger
    entries written in one action share a timestamp.
    """

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 1) -> datetime:
        self._now += timedelta(seconds=seconds)
        return self._now
