"""
Datetime utility functions.
Provides replacements for deprecated datetime functions.
"""

from datetime import datetime
from typing import Optional, Union
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to a naive datetime.

    Some drivers (SQLite) hand back naive values even for timezone-aware
    columns; those are stored in UTC.

    Args:
        value: Datetime from the database or None

    Returns:
        Timezone-aware datetime, or None if value was None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value


def is_past(deadline: Optional[datetime]) -> bool:
    """Return True if the deadline exists and is earlier than now (UTC)."""
    if deadline is None:
        return False
    return ensure_aware(deadline) < utcnow()


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO 8601 date or datetime into an aware UTC datetime.

    Accepts "2026-03-01", "2026-03-01T18:00:00" and "2026-03-01T18:00:00Z".

    Raises:
        ValueError: If the string is not a valid ISO date/datetime
    """
    if isinstance(value, datetime):
        return ensure_aware(value)

    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date: {value!r}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}")
    return ensure_aware(parsed).astimezone(pytz.UTC)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """ISO string for a datetime column value (None-safe)."""
    return ensure_aware(value).isoformat() if value else None
