"""Timestamp utilities for UTC handling.

Trust records, reviews and engagements all carry UTC timestamps. The
persistence layer stores them as ISO 8601 strings, so this module provides
the conversions in both directions plus the clock used everywhere else.
"""

from datetime import datetime, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC time with timezone info

    Example:
        >>> now = utc_now()
        >>> now.tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    If the datetime is timezone-naive, it's treated as UTC.
    If the datetime has a different timezone, it's converted to UTC.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as an ISO 8601 storage string with microseconds.

    Args:
        dt: Datetime to format (naive values are treated as UTC)

    Returns:
        String like ``2026-10-16T09:30:00.000000Z`` or None

    Example:
        >>> dt = datetime(2026, 10, 16, 9, 30, tzinfo=timezone.utc)
        >>> format_timestamp(dt)
        '2026-10-16T09:30:00.000000Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORAGE_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 string back into a UTC datetime.

    Accepts the storage format as well as values without microseconds,
    with a ``+00:00`` offset, or date-only strings.

    Args:
        value: ISO 8601 formatted string

    Returns:
        Timezone-aware datetime in UTC, or None for empty/unparseable input
    """
    if not value or not value.strip():
        return None

    cleaned = value.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        try:
            return ensure_utc(datetime.strptime(value.strip(), "%Y-%m-%d"))
        except ValueError:
            return None
