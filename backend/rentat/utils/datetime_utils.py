"""
Date utilities shared by payments and the availability calendar
"""
from datetime import date, datetime, timezone
from typing import Union


def utc_now() -> datetime:
    """
    Get current UTC time

    Returns:
        datetime: Current UTC time with timezone awareness
    """
    return datetime.now(timezone.utc)


def format_date(value: date) -> str:
    """
    Format a date as YYYY-MM-DD

    Example:
        >>> format_date(date(2025, 1, 5))
        '2025-01-05'
    """
    return value.strftime("%Y-%m-%d")


def parse_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD string (dates and datetimes pass through as dates)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def add_months(value: date, months: int) -> date:
    """
    Shift to the first day of the month `months` away from `value`

    Example:
        >>> add_months(date(2025, 1, 31), 1)
        datetime.date(2025, 2, 1)
    """
    index = value.year * 12 + (value.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)
