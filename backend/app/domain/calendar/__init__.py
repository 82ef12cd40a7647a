# backend/app/domain/calendar/__init__.py

from .day import (
    CalendarDay,
    InvalidDateFormat,
    Ordering,
    add_days,
    add_months,
    compare,
    days_between,
    in_range,
    is_valid_year,
    is_valid_ymd,
    iterate_days,
    parse_ymd,
)
from .period import BlockedPeriod, DayRange, PeriodSource, RawCalendarEvent
from .merger import MergeInvariantError, check_merged, merge_periods
from .availability import (
    blocked_days,
    compute_available_periods,
    find_blocking_periods,
    find_conflicts,
    horizon_end,
    is_blocked,
)

__all__ = [
    "CalendarDay",
    "InvalidDateFormat",
    "Ordering",
    "add_days",
    "add_months",
    "compare",
    "days_between",
    "in_range",
    "is_valid_year",
    "is_valid_ymd",
    "iterate_days",
    "parse_ymd",
    "BlockedPeriod",
    "DayRange",
    "PeriodSource",
    "RawCalendarEvent",
    "MergeInvariantError",
    "check_merged",
    "merge_periods",
    "blocked_days",
    "compute_available_periods",
    "find_blocking_periods",
    "find_conflicts",
    "horizon_end",
    "is_blocked",
]
