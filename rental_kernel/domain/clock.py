"""
Time sources for the rental kernel.

Ledger stamps (``recorded_at``, ``confirmed_at``, ``cancelled_at``) come from
``Clock.now()``; expiry and maintenance alerting counts days from
``Clock.today()``. Nothing below the service layer reads the system clock
directly, so tests pin both with ``DeterministicClock``.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """Injected into services; ``now()`` is aware UTC, ``today()`` is the business date."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    @abstractmethod
    def today(self) -> date:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return date.today()


class DeterministicClock(Clock):
    """
    Clock pinned to a fixed instant until moved with ``advance``.

    ``today()`` is the UTC calendar date of ``now()``, so advancing across
    midnight moves expiry countdowns along with it.
    """

    DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, start: datetime | None = None):
        if start is not None and start.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware start")
        self._now = start or self.DEFAULT_START

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._now.date()

    def advance(self, delta: timedelta) -> datetime:
        self._now += delta
        return self._now

    def advance_days(self, days: int = 1) -> datetime:
        return self.advance(timedelta(days=days))


class SequentialClock(Clock):
    """
    Hands out the given instants in order, one per ``now()`` call.

    Once exhausted it keeps returning the last instant. ``today()`` does not
    consume a value.
    """

    def __init__(self, times: list[datetime]):
        if not times:
            raise ValueError("SequentialClock requires at least one time")
        self._remaining: Iterator[datetime] = iter(times)
        self._current = times[0]

    def now(self) -> datetime:
        self._current = next(self._remaining, self._current)
        return self._current

    def today(self) -> date:
        return self._current.date()
