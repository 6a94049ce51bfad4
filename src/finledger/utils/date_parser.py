"""Date parsing and calendar month arithmetic."""

import calendar
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2025-01-15", "January 15, 2025") and a few
    relative forms: "today", "yesterday", "tomorrow", and "last/this/next
    month" (first day of that month).

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
        "last month": (today - relativedelta(months=1)).replace(day=1),
        "this month": today.replace(day=1),
        "next month": (today + relativedelta(months=1)).replace(day=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        return date_parser.parse(date_str, yearfirst=True).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def add_months(start: date, months: int) -> date:
    """Advance ``start`` by whole calendar months.

    The day of month is carried over and clamped to the last day of the
    target month, so 2025-01-31 + 1 month is 2025-02-28, and + 2 months is
    2025-03-31 (always measured from ``start``, never chained).
    """
    return start + relativedelta(months=months)


def day_in_month(year: int, month: int, day: int) -> date:
    """Build a date for ``day`` in the given month, clamped to the month's length."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def next_period(month: int, year: int) -> tuple[int, int]:
    """Return the (month, year) following the given one."""
    if month == 12:
        return 1, year + 1
    return month + 1, year
