"""Date and month parsing utilities."""

import calendar
import re
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "January 15, 2024", etc.
    - Relative dates: "today", "yesterday", "tomorrow"

    Args:
        date_str: Date string in various formats

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
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def validate_month(month_year: str) -> str:
    """Check a "YYYY-MM" string and return it unchanged.

    Raises:
        ValueError: If the string is not a valid month
    """
    match = MONTH_PATTERN.match(month_year.strip()) if month_year else None
    if match is None or not 1 <= int(match.group(2)) <= 12:
        raise ValueError(f"Invalid month '{month_year}': expected YYYY-MM")
    return month_year.strip()


def parse_month(month_str: str) -> str:
    """Parse a month string into "YYYY-MM".

    Accepts "YYYY-MM", "this month", "last month", "next month", or any
    date understood by parse_date (its month is used).

    Raises:
        ValueError: If the string cannot be parsed
    """
    month_str = month_str.strip().lower()
    today = date.today().replace(day=1)

    relative_months = {
        "this month": today,
        "last month": today - relativedelta(months=1),
        "next month": today + relativedelta(months=1),
    }
    if month_str in relative_months:
        return relative_months[month_str].strftime("%Y-%m")

    if MONTH_PATTERN.match(month_str):
        return validate_month(month_str)

    return parse_date(month_str).strftime("%Y-%m")


def month_bounds(month_year: str) -> tuple[date, date]:
    """Get the first and last day of a "YYYY-MM" month."""
    year, month = (int(part) for part in validate_month(month_year).split("-"))
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def current_month() -> str:
    """Get the current month as "YYYY-MM"."""
    return date.today().strftime("%Y-%m")


def trailing_months(count: int, end_month: str) -> list[str]:
    """Get the count months ending at end_month, oldest first."""
    if count < 1:
        raise ValueError(f"Month count must be at least 1 (got {count})")
    year, month = (int(part) for part in validate_month(end_month).split("-"))
    end = date(year, month, 1)
    return [(end - relativedelta(months=offset)).strftime("%Y-%m") for offset in range(count - 1, -1, -1)]
