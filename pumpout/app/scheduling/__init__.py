"""Calendar utilities for Monday-based service weeks and seasons."""

from .weeks import (
    DateLike,
    as_day,
    available_mondays,
    is_monday,
    is_same_week,
    month_bounds,
    season_cutoff,
    season_window,
    week_start,
    weeks_until,
)

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
