from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional

from common.utils.datetime_normaliser import hotel_tz


class Clock:
    """Source of "now" for everything time-dependent in the core.

    Services never read the wall clock themselves; they ask the injected
    clock, which lets tests replay any moment of the day.
    """

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz or hotel_tz()

    def now(self) -> datetime:
        raise NotImplementedError

    def local_now(self) -> datetime:
        return self.now().astimezone(self.tz)

    def today(self) -> date:
        return self.local_now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """A clock frozen at ``current`` until moved explicitly."""

    def __init__(self, current: datetime, tz: Optional[tzinfo] = None):
        super().__init__(tz)
        if current.tzinfo is None:
            raise ValueError("FixedClock needs a timezone-aware datetime")
        self.current = current

    def now(self) -> datetime:
        return self.current.astimezone(timezone.utc)

    def set(self, current: datetime):
        if current.tzinfo is None:
            raise ValueError("FixedClock needs a timezone-aware datetime")
        self.current = current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)
