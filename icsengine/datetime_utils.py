"""Datetime normalization helpers for ICS processing.

Every datetime that leaves the parser is timezone-aware UTC. All-day DATE
values become midnight UTC and floating (naive) values are read as UTC.
"""

import logging
from datetime import UTC, date, datetime, time, timedelta
from typing import Any, Optional

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

ICS_DATETIME_FORMAT = "%Y%m%dT%H%M%SZ"
ICS_DATE_FORMAT = "%Y%m%d"


def ensure_timezone_aware(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware.

    Args:
        dt: Datetime to make timezone-aware

    Returns:
        Timezone-aware datetime (UTC if originally naive)
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def ensure_utc(value: Any) -> datetime:
    """Normalize a date or datetime to an aware UTC datetime.

    Args:
        value: ``datetime``, ``date``, or an icalendar property exposing ``.dt``

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        TypeError: If the value is not a date/datetime
    """
    value = getattr(value, "dt", value)

    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return ensure_timezone_aware(value).astimezone(UTC)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    raise TypeError(f"expected date or datetime, got {type(value).__name__}")


def to_utc_optional(value: Any) -> Optional[datetime]:
    """Like ensure_utc, but returns None for missing or unusable values."""
    if value is None:
        return None
    try:
        return ensure_utc(value)
    except (TypeError, ValueError) as e:
        logger.debug("Ignoring non-date value: %s", e)
        return None


def to_millis(dt: datetime) -> int:
    """Milliseconds since the Unix epoch for an aware or naive (UTC) datetime."""
    return (ensure_timezone_aware(dt) - EPOCH) // timedelta(milliseconds=1)


def format_ics_datetime(dt: datetime) -> str:
    """Format a datetime as a UTC ICS DATE-TIME string (``YYYYMMDDTHHMMSSZ``)."""
    return ensure_utc(dt).strftime(ICS_DATETIME_FORMAT)


def format_ics_value(value: Any) -> str:
    """Render a DATE or DATE-TIME as ICS text, keeping DATE values as ``YYYYMMDD``."""
    value = getattr(value, "dt", value)
    if isinstance(value, datetime):
        return format_ics_datetime(value)
    if isinstance(value, date):
        return value.strftime(ICS_DATE_FORMAT)
    raise TypeError(f"expected date or datetime, got {type(value).__name__}")


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Accepts a trailing ``Z`` as well as explicit offsets. Naive values are
    read as UTC.

    Raises:
        ValueError: If the string is not ISO-8601
    """
    return ensure_utc(datetime.fromisoformat(value.strip()))


def format_iso_utc(dt: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision (``2025-01-01T10:00:00.000Z``)."""
    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)
