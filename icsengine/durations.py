"""ISO-8601 duration, alarm trigger and ICS date string helpers.

These work on the string forms stored alongside events (``PT15M``,
``-P1D``, ``20250101T100000Z``) rather than on icalendar property objects.
"""

import math
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal, Optional, Union

from .datetime_utils import ICS_DATE_FORMAT, ICS_DATETIME_FORMAT, ensure_utc

DurationUnit = Literal["days", "hours", "minutes", "seconds"]
TriggerUnit = Literal["days", "hours", "minutes"]
AlarmWhen = Literal["before", "at", "after"]

_DAYS_RE = re.compile(r"(\d+)D")
_HOURS_RE = re.compile(r"(\d+)H")
_MINUTES_RE = re.compile(r"(\d+)M")
_SECONDS_RE = re.compile(r"(\d+)S")
_TIME_PART_RE = re.compile(r"T(.+)")
_ABSOLUTE_TRIGGER_RE = re.compile(r"^\d{8}T\d{6}Z?$")
_ICS_DATETIME_RE = re.compile(r"^\d{8}T\d{6}Z$")
_ICS_DATE_RE = re.compile(r"^\d{8}$")


@dataclass(frozen=True)
class ParsedDuration:
    """A duration reduced to its largest non-zero unit."""

    value: int
    unit: DurationUnit


@dataclass(frozen=True)
class AlarmTrigger:
    """A relative or absolute alarm trigger in form-friendly terms."""

    when: AlarmWhen
    value: int
    unit: TriggerUnit


def _match_int(pattern: re.Pattern, text: str) -> int:
    match = pattern.search(text)
    return int(match.group(1)) if match else 0


def _split_duration(duration: str) -> Optional[tuple[bool, int, str]]:
    """Split ``[-]P[nD][T...]`` into (negative, days, time part)."""
    negative = duration.startswith("-")
    clean = duration[1:] if negative else duration
    without_p = clean[1:] if clean.startswith("P") else clean

    days = _match_int(_DAYS_RE, without_p)
    time_match = _TIME_PART_RE.search(without_p)
    if not time_match and days == 0:
        return None
    return negative, days, time_match.group(1) if time_match else ""


def is_absolute_trigger(trigger: str) -> bool:
    """Check if an alarm trigger is an absolute date-time (``YYYYMMDDTHHMMSS[Z]``)."""
    return bool(_ABSOLUTE_TRIGGER_RE.match(trigger))


def parse_duration(duration: Optional[str]) -> Optional[ParsedDuration]:
    """Parse an ISO-8601 duration into its largest non-zero unit.

    Args:
        duration: Duration string such as ``PT5M``, ``PT1H`` or ``P2D``

    Returns:
        ParsedDuration, or None if the string is empty, invalid or zero

    Examples:
        >>> parse_duration("PT15M")
        ParsedDuration(value=15, unit='minutes')
        >>> parse_duration("P1DT2H")
        ParsedDuration(value=1, unit='days')
    """
    if not duration or not duration.strip():
        return None

    split = _split_duration(duration)
    if split is None:
        return None
    _, days, time_part = split

    hours = _match_int(_HOURS_RE, time_part)
    minutes = _match_int(_MINUTES_RE, time_part)
    seconds = _match_int(_SECONDS_RE, time_part)

    if days > 0:
        return ParsedDuration(days, "days")
    if hours > 0:
        return ParsedDuration(hours, "hours")
    if minutes > 0:
        return ParsedDuration(minutes, "minutes")
    if seconds > 0:
        return ParsedDuration(seconds, "seconds")
    return None


def is_valid_duration(duration: str) -> bool:
    """Check if a string is a usable ISO-8601 duration."""
    return parse_duration(duration) is not None


def duration_to_minutes(duration: Optional[str]) -> Optional[int]:
    """Convert a duration to whole minutes, rounding seconds up."""
    parsed = parse_duration(duration)
    if parsed is None:
        return None

    if parsed.unit == "days":
        return parsed.value * 24 * 60
    if parsed.unit == "hours":
        return parsed.value * 60
    if parsed.unit == "seconds":
        return math.ceil(parsed.value / 60)
    return parsed.value


def format_duration(value: Union[int, str], unit: DurationUnit) -> str:
    """Format a positive value and unit as an ISO-8601 duration.

    Returns an empty string when the value is not a positive integer.
    """
    try:
        number = int(value)
    except (TypeError, ValueError):
        return ""
    if number <= 0:
        return ""

    if unit == "days":
        return f"P{number}D"
    if unit == "hours":
        return f"PT{number}H"
    if unit == "seconds":
        return f"PT{number}S"
    return f"PT{number}M"


def format_negative_duration(value: int, unit: TriggerUnit) -> str:
    """Format a duration that points before the event (``-PT15M``)."""
    positive = format_duration(value, unit)
    return f"-{positive}" if positive else ""


def parse_alarm_trigger(trigger: Optional[str]) -> Optional[AlarmTrigger]:
    """Parse an alarm trigger into when/value/unit.

    Absolute triggers map to ``AlarmTrigger("at", 0, "minutes")``. Seconds are
    not representable and a seconds-only trigger returns None.
    """
    if not trigger:
        return None

    if is_absolute_trigger(trigger):
        return AlarmTrigger("at", 0, "minutes")

    split = _split_duration(trigger)
    if split is None:
        return None
    negative, days, time_part = split
    hours = _match_int(_HOURS_RE, time_part)
    minutes = _match_int(_MINUTES_RE, time_part)

    when: AlarmWhen = "before" if negative else "after"
    if days > 0:
        return AlarmTrigger(when, days, "days")
    if hours > 0:
        return AlarmTrigger(when, hours, "hours")
    if minutes > 0:
        return AlarmTrigger(when, minutes, "minutes")
    return None


def format_alarm_trigger(when: AlarmWhen, value: int, unit: TriggerUnit) -> str:
    """Format a relative alarm trigger. ``at`` triggers have no duration and yield ``""``."""
    if when == "at":
        return ""

    prefix = "-" if when == "before" else ""
    if unit == "days":
        return f"{prefix}P{value}D"
    if unit == "hours":
        return f"{prefix}PT{value}H"
    return f"{prefix}PT{value}M"


def parse_ics_date(value: Optional[str]) -> Optional[datetime]:
    """Parse ``YYYYMMDDTHHMMSSZ`` or ``YYYYMMDD`` into an aware UTC datetime.

    Returns None for empty or unrecognized input.
    """
    if not value or not value.strip():
        return None

    clean = value.strip()
    try:
        if _ICS_DATETIME_RE.match(clean):
            return datetime.strptime(clean, ICS_DATETIME_FORMAT).replace(tzinfo=UTC)
        if _ICS_DATE_RE.match(clean):
            return datetime.strptime(clean, ICS_DATE_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        return None
    return None


def format_ics_date(dt: datetime) -> str:
    """Format a datetime as ``YYYYMMDDTHHMMSSZ`` in UTC."""
    return ensure_utc(dt).strftime(ICS_DATETIME_FORMAT)


def format_ics_date_only(dt: datetime) -> str:
    """Format a datetime as ``YYYYMMDD`` (UTC calendar day)."""
    return ensure_utc(dt).strftime(ICS_DATE_FORMAT)
