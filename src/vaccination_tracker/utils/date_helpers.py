"""
Date Helper Utilities for Vaccination Schedules.

This module provides the calendar arithmetic used by the scheduling engine. All schedule
math works at day precision: datetimes are normalised to their calendar date before any
comparison, and month offsets follow the calendar (not fixed 30-day increments).
"""

from datetime import date, datetime
from typing import Union

from dateutil.relativedelta import relativedelta

DateLike = Union[date, datetime, str]


def to_date(value: DateLike) -> date:
    """
    Normalise a date-like value to a calendar date, dropping any time of day.

    Args:
        value: A `date`, a `datetime`, or an ISO 8601 string (date or datetime).

    Returns:
        date: The calendar date.

    Raises:
        ValueError: If a string cannot be parsed as an ISO date.

    Examples:
        >>> to_date(datetime(2024, 3, 1, 23, 59))
        datetime.date(2024, 3, 1)
        >>> to_date("2024-03-01T08:00:00Z")
        datetime.date(2024, 3, 1)
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError as e:
        raise ValueError(f"Invalid date: {value!r}. Error: {str(e)}")


def add_months(start: DateLike, months: int) -> date:
    """
    Add calendar months to a date, clamping to the last valid day of the target month.

    Args:
        start: The starting date.
        months: Number of months to add (may be negative).

    Returns:
        date: The shifted date.

    Examples:
        >>> add_months(date(2024, 1, 31), 1)
        datetime.date(2024, 2, 29)
        >>> add_months(date(2023, 1, 31), 1)
        datetime.date(2023, 2, 28)
        >>> add_months(date(2023, 6, 15), 12)
        datetime.date(2024, 6, 15)
    """
    return to_date(start) + relativedelta(months=int(months))


def days_between(start: DateLike, end: DateLike) -> int:
    """
    Signed whole-day difference `end - start`, ignoring time of day.

    Examples:
        >>> days_between(date(2024, 1, 1), date(2024, 1, 6))
        5
        >>> days_between(datetime(2024, 1, 1, 23, 0), datetime(2024, 1, 2, 1, 0))
        1
    """
    return (to_date(end) - to_date(start)).days


def months_between(start: DateLike, end: DateLike) -> int:
    """
    Whole calendar months elapsed from `start` to `end` (0 if `end` precedes `start`).

    Examples:
        >>> months_between(date(2023, 1, 31), date(2023, 2, 28))
        0
        >>> months_between(date(2023, 1, 15), date(2024, 3, 15))
        14
    """
    start_date = to_date(start)
    end_date = to_date(end)
    if end_date < start_date:
        return 0
    delta = relativedelta(end_date, start_date)
    return delta.years * 12 + delta.months


def format_age(date_of_birth: DateLike, today: DateLike) -> str:
    """
    Format a child's age for display, e.g. "7 months" or "2 years 3 months".

    Examples:
        >>> format_age(date(2023, 1, 1), date(2023, 8, 1))
        '7 months'
        >>> format_age(date(2022, 1, 1), date(2024, 4, 1))
        '2 years 3 months'
    """
    months = months_between(date_of_birth, today)
    if months < 12:
        return f"{months} month{'s' if months != 1 else ''}"

    years, remaining_months = divmod(months, 12)
    label = f"{years} year{'s' if years > 1 else ''}"
    if remaining_months:
        label += f" {remaining_months} month{'s' if remaining_months > 1 else ''}"
    return label


def format_scheduled_date(scheduled: DateLike, today: DateLike) -> str:
    """
    Format a scheduled date relative to today: "Today", "Tomorrow", or "Mar 01, 2024".
    """
    delta = days_between(today, scheduled)
    if delta == 0:
        return "Today"
    if delta == 1:
        return "Tomorrow"
    return to_date(scheduled).strftime("%b %d, %Y")
