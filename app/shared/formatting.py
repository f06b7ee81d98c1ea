"""Human-readable date formatting for job notes"""

from datetime import date, datetime


def format_timestamp(value: datetime) -> str:
    """``Mar 2, 2026, 3:05 PM``"""
    hour = value.hour % 12 or 12
    return f"{value:%b} {value.day}, {value:%Y}, {hour}:{value:%M} {value:%p}"


def format_day(value: date) -> str:
    """``Mar 2, 2026``"""
    return f"{value:%b} {value.day}, {value:%Y}"
