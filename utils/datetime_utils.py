"""
Date and time helpers.
Timestamps are timezone-aware UTC; appointment dates and times are
business-local values with no timezone attached.
"""

import re
from datetime import date, datetime, timezone
from typing import Union

from utils.exceptions import ValidationError

_TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def to_iso_string(dt: datetime) -> str:
    """Convert datetime to ISO format string (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.isoformat()


def parse_calendar_date(value: Union[str, date, None]) -> date:
    """
    Parse a business-local calendar date.

    Args:
        value: ``YYYY-MM-DD`` string or a date

    Returns:
        The parsed date

    Raises:
        ValidationError: If the value is missing or not a valid date
    """
    if value is None or value == "":
        raise ValidationError("Please provide a date parameter")

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)") from e


def is_time_of_day(value: str) -> bool:
    """Check that a value is a zero-padded ``HH:MM`` string."""
    return isinstance(value, str) and bool(_TIME_OF_DAY_PATTERN.match(value))


def format_time_of_day(minutes_since_midnight: int) -> str:
    """Format minutes since midnight as ``HH:MM``."""
    hours, minutes = divmod(minutes_since_midnight, 60)
    return f"{hours:02d}:{minutes:02d}"
