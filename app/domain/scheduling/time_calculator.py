"""Time calculations for calendar-day schedules"""

from datetime import date, datetime, time, timedelta
from typing import Union

DayLike = Union[date, datetime]

END_OF_DAY = time(23, 59, 59, 999000)


def as_date(value: DayLike) -> date:
    """Calendar day of ``value``; the time of day is ignored"""
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_day(value: DayLike) -> datetime:
    """00:00:00.000 on the day of ``value``"""
    return datetime.combine(as_date(value), time.min)


def end_of_day(value: DayLike) -> datetime:
    """23:59:59.999 on the day of ``value``"""
    return datetime.combine(as_date(value), END_OF_DAY)


def days_between(later: DayLike, earlier: DayLike) -> int:
    """Whole calendar days from ``earlier`` to ``later`` (negative if reversed)"""
    return (as_date(later) - as_date(earlier)).days


def inclusive_days(start: DayLike, end: DayLike) -> int:
    """Number of calendar days a start/end range covers, both ends counted"""
    return days_between(end, start) + 1


def span_end(start: DayLike, duration: int) -> datetime:
    """End boundary of a range of ``duration`` days beginning on ``start``"""
    return end_of_day(as_date(start) + timedelta(days=duration - 1))
