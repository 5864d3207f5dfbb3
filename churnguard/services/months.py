"""
Month calendar helpers.

Months are keyed as ``YYYY-MM`` strings throughout the engine (the
monthly_metrics primary key uses the same format). These helpers convert
between keys, dates and display labels.
"""

import calendar
from datetime import date, timedelta
from typing import Optional, Tuple


def parse_month(month: str) -> Tuple[int, int]:
    """
    Parse a ``YYYY-MM`` key into (year, month).

    Raises:
        ValueError: If the key is malformed or the month is out of range.
    """
    try:
        year_str, month_str = month.split("-")
        year, month_num = int(year_str), int(month_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid month key {month!r}, expected YYYY-MM")
    if len(year_str) != 4 or len(month_str) != 2 or not 1 <= month_num <= 12:
        raise ValueError(f"Invalid month key {month!r}, expected YYYY-MM")
    return year, month_num


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def first_day(month: str) -> date:
    year, month_num = parse_month(month)
    return date(year, month_num, 1)


def last_day(month: str) -> date:
    year, month_num = parse_month(month)
    return date(year, month_num, calendar.monthrange(year, month_num)[1])


def days_in_month(month: str) -> int:
    return last_day(month).day


def month_label(month: str) -> str:
    """Display label, e.g. ``2025-09`` -> ``September 2025``."""
    year, month_num = parse_month(month)
    return f"{calendar.month_name[month_num]} {year}"


def previous_month(month: str) -> str:
    return month_key(first_day(month) - timedelta(days=1))


def same_day_in_previous_month(day: date) -> date:
    """
    The same day of month in the prior month, clamped to that month's last day.

    Example:
        >>> same_day_in_previous_month(date(2025, 3, 31))
        datetime.date(2025, 2, 28)
    """
    prior_last = day.replace(day=1) - timedelta(days=1)
    return prior_last.replace(day=min(day.day, prior_last.day))


def is_closed_month(month: str, as_of: Optional[date] = None) -> bool:
    """True when the month ends strictly before the as-of month."""
    as_of = as_of or date.today()
    return last_day(month) < as_of.replace(day=1)


__all__ = [
    'parse_month',
    'month_key',
    'first_day',
    'last_day',
    'days_in_month',
    'month_label',
    'previous_month',
    'same_day_in_previous_month',
    'is_closed_month',
]
