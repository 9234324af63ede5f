from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from account_tracking.config import DEFAULT_TIMEZONE


DateLike = Union[date, datetime]

# Monday == 0 ... Sunday == 6
_DAYS_BACK = {0: 3, 6: 2}


def _zone(tz: Optional[tzinfo]) -> tzinfo:
    return tz if tz is not None else ZoneInfo(DEFAULT_TIMEZONE)


def local_date(value: Optional[DateLike] = None, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of `value` in the reporting zone (today when None)."""
    tz = _zone(tz)
    if value is None:
        return datetime.now(tz).date()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def midnight(day: date, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.combine(day, time.min, tzinfo=_zone(tz))


def previous_business_day(value: Optional[DateLike] = None, tz: Optional[tzinfo] = None) -> date:
    """
    Previous business day by weekday only (no holiday calendar):
    Tue-Sat step back one day, Sunday two, Monday three (to Friday).
    """
    day = local_date(value, tz)
    return day - timedelta(days=_DAYS_BACK.get(day.weekday(), 1))


def is_first_business_day_after_new_year(day: date) -> bool:
    """True on the first weekday strictly after January 1 (Jan 1 itself never qualifies)."""
    if day.month != 1 or day.day > 7:
        return False
    first = date(day.year, 1, 2)
    while first.weekday() >= 5:
        first += timedelta(days=1)
    return day == first


def query_start_date(reference_date: Optional[DateLike] = None, tz: Optional[tzinfo] = None) -> datetime:
    """
    Start of the default reporting window, at midnight in the reporting zone.

    Normally the previous business day. On the first business day after January 1 the window
    reaches back five calendar days instead, so the year-end holiday stretch is covered.
    """
    day = local_date(reference_date, tz)
    if is_first_business_day_after_new_year(day):
        start = day - timedelta(days=5)
    else:
        start = previous_business_day(day)
    return midnight(start, tz)


def week_start(now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> datetime:
    """Monday 00:00 of the week containing `now`."""
    day = local_date(now, tz)
    return midnight(day - timedelta(days=day.weekday()), tz)


def month_start(year: int, month: int, tz: Optional[tzinfo] = None) -> datetime:
    return midnight(date(year, month, 1), tz)


def day_bounds(day: date, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
    """First and last instant of a calendar day."""
    start = midnight(day, tz)
    return start, datetime.combine(day, time.max, tzinfo=_zone(tz))
