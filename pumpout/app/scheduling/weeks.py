"""Day-granularity calendar arithmetic for service weeks and seasons.

Every helper accepts either :class:`datetime.date` or :class:`datetime.datetime`
values and discards the time of day before comparing, so a timestamp late in
the evening never spills into the following day's week.
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union

from ..config import DEFAULT_CONFIG, BookingConfig

DateLike = Union[date, datetime]

_MONDAY = 0
_DAYS_PER_WEEK = 7


def as_day(value: DateLike) -> date:
    """Return the calendar day of ``value`` with any time component dropped."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def is_monday(value: DateLike) -> bool:
    return as_day(value).weekday() == _MONDAY


def week_start(value: DateLike) -> date:
    """Return the Monday of the ISO week containing ``value``."""

    day = as_day(value)
    return day - timedelta(days=day.weekday())


def is_same_week(first: DateLike, second: DateLike) -> bool:
    """Return whether both values fall in the same Monday-Sunday week."""

    return week_start(first) == week_start(second)


def available_mondays(start: DateLike, limit: DateLike) -> List[date]:
    """List the Mondays on or after ``start`` and on or before ``limit``.

    The Monday of ``start``'s own week is only included when ``start`` is that
    Monday; a week already under way is not offered again.
    """

    first_day = as_day(start)
    last_day = as_day(limit)
    if first_day > last_day:
        return []

    current = week_start(first_day)
    if current < first_day:
        current += timedelta(days=_DAYS_PER_WEEK)

    mondays: List[date] = []
    while current <= last_day:
        mondays.append(current)
        current += timedelta(days=_DAYS_PER_WEEK)
    return mondays


def weeks_until(start: DateLike, end: DateLike) -> int:
    """Count the weeks from ``start`` through ``end``, rounding partial weeks up.

    Both endpoints are service days, so a single remaining day is one week.
    Returns 0 when ``start`` falls after ``end``.
    """

    first_day = as_day(start)
    last_day = as_day(end)
    if first_day > last_day:
        return 0
    inclusive_days = (last_day - first_day).days + 1
    return -(-inclusive_days // _DAYS_PER_WEEK)


def month_bounds(value: DateLike) -> Tuple[date, date]:
    """Return the first and last day of the calendar month containing ``value``."""

    day = as_day(value)
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def season_cutoff(year: int, config: Optional[BookingConfig] = None) -> date:
    """Return the last bookable day of the season in ``year`` (October 31 by default)."""

    cfg = config or DEFAULT_CONFIG
    return date(year, cfg.season_end_month, cfg.season_end_day)


def season_window(year: int, config: Optional[BookingConfig] = None) -> Tuple[date, date]:
    """Return the configured ``(season_start, season_end)`` pair for ``year``."""

    cfg = config or DEFAULT_CONFIG
    return date(year, cfg.season_start_month, cfg.season_start_day), season_cutoff(year, cfg)


__all__ = [
    "DateLike",
    "as_day",
    "available_mondays",
    "is_monday",
    "is_same_week",
    "month_bounds",
    "season_cutoff",
    "season_window",
    "week_start",
    "weeks_until",
]
