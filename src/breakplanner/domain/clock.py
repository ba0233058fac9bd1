"""Injectable clock.

All reads of the current time go through a Clock so catalog building and
id generation can be tested without patching global time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        pass

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time of the host."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """A clock frozen at a given instant, advanced manually."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def advance(self, **delta) -> None:
        self.instant = self.instant + timedelta(**delta)
