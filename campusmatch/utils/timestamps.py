"""Timestamp utilities for UTC handling, storage formatting, and age checks.

All timestamps in the matching pipeline are timezone-aware UTC datetimes.
Storage uses ISO 8601 strings with microseconds and a 'Z' suffix so that
lexical ordering in the database matches chronological ordering.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    A timezone-naive datetime is treated as UTC; an aware datetime in another
    zone is converted.

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


def parse_iso_datetime(iso_string: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 datetime string to UTC datetime.

    Supports:
    - 2026-11-04T12:00:00.123456Z (storage format)
    - 2026-11-04T12:00:00Z
    - 2026-11-04T12:00:00+05:30
    - 2026-11-04

    Args:
        iso_string: ISO 8601 formatted datetime string

    Returns:
        Timezone-aware datetime in UTC, or None if empty or unparseable
    """
    if not iso_string or not iso_string.strip():
        return None

    cleaned = iso_string.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        try:
            return ensure_utc(datetime.strptime(cleaned, "%Y-%m-%d"))
        except ValueError:
            return None


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for database storage.

    Args:
        dt: Datetime to format (naive values are treated as UTC)

    Returns:
        ISO 8601 string in STORAGE_FORMAT, or None if dt is None

    Example:
        >>> format_timestamp(datetime(2026, 11, 4, 12, 0, tzinfo=timezone.utc))
        '2026-11-04T12:00:00.000000Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORAGE_FORMAT)


def is_older_than(dt: datetime, max_age: timedelta, now: Optional[datetime] = None) -> bool:
    """Check whether a timestamp is strictly older than a maximum age.

    An age exactly equal to max_age is NOT older (the boundary is inclusive
    for freshness).

    Args:
        dt: Timestamp to check
        max_age: Maximum allowed age
        now: Reference time (defaults to utc_now())

    Returns:
        True if now - dt > max_age
    """
    reference = ensure_utc(now) if now is not None else utc_now()
    return reference - ensure_utc(dt) > max_age
