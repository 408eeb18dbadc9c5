import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import List, Union
from zoneinfo import ZoneInfo

from common.utils.constants import HOTEL_TIMEZONE


def hotel_tz(name: str = HOTEL_TIMEZONE) -> tzinfo:
    return ZoneInfo(name)


def from_iso_string(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        raise ValueError("Stored datetime must be timezone-aware")
    return dt.astimezone(timezone.utc)


def to_stay_date(value: Union[str, date, datetime], tz: tzinfo = None) -> date:
    """Normalise a check-in/check-out value to a hotel-local calendar date.

    Accepts a ``date``, an aware ``datetime`` or an ISO-8601 string of either
    form. Datetimes are converted to the hotel timezone before the date is
    taken, so ``2026-03-01T23:30:00-05:00`` lands on the hotel's own calendar.
    """
    tz = tz or hotel_tz()
    if isinstance(value, str):
        value = value.strip()
        if "T" not in value and " " not in value:
            return date.fromisoformat(value)
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise ValueError("datetime must include timezone offset")
        return value.astimezone(tz).date()
    if isinstance(value, date):
        return value
    raise ValueError(f"unsupported date value: {value!r}")


def local_instant(day: date, at: time, tz: tzinfo = None) -> datetime:
    """The aware instant for a hotel-local wall-clock time on ``day``."""
    return datetime.combine(day, at, tzinfo=tz or hotel_tz())


def nights_between(check_in: date, check_out: date) -> int:
    return math.ceil((check_out - check_in) / timedelta(days=1))


def occupied_nights(check_in: date, check_out: date) -> List[date]:
    # half-open: the check-out day itself is not occupied
    return [
        check_in + timedelta(days=offset)
        for offset in range(nights_between(check_in, check_out))
    ]
