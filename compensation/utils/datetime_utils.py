"""
Datetime utilities.

Provides timezone-aware datetime functions and the business calendar.
"""

from datetime import UTC, date, datetime, time

from compensation.config.business_constants import WORKING_WEEKDAYS


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def utc_today() -> date:
    """Current UTC calendar date."""
    return utc_now().date()


def start_of_day(day: date) -> datetime:
    """Midnight UTC of the given date."""
    return datetime.combine(day, time.min, tzinfo=UTC)


def is_working_day(day: date) -> bool:
    """
    Check if date is a business day (Monday-Friday).

    Args:
        day: Calendar date

    Returns:
        True for Monday through Friday
    """
    return day.weekday() in WORKING_WEEKDAYS


def iso_week_key(day: date) -> str:
    """
    ISO week identifier used to key weekly payouts.

    Example:
        >>> iso_week_key(date(2025, 1, 6))
        '2025-W02'
    """
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"
