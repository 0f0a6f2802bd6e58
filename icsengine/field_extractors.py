"""Per-property extractors for VEVENT components.

Each extractor pulls one RFC 5545 property (or a small group of them) out of
an icalendar component and returns a canonical Python value. Malformed input
is reported through the ``errors`` list instead of raised, so one bad
property never costs the whole event.

The ``normalize_*`` functions are the single entry point for properties that
reach us in several raw shapes (library objects, strings, mappings). They
return the canonical value or raise ``ValueError``.
"""

import logging
from collections.abc import Mapping
from datetime import date, datetime, timedelta
from typing import Any, Optional

from icalendar.prop import vDuration, vRecur

from .attendee_parser import AttendeeParser, parse_calendar_address
from .datetime_utils import ensure_utc, format_ics_value, to_utc_optional
from .models import ParsedAlarm, ParsedAttendee

logger = logging.getLogger(__name__)

_DURATION_KEYS = ("weeks", "days", "hours", "minutes", "seconds")

_attendee_parser = AttendeeParser()


def _first(value: Any) -> Any:
    """Return the first occurrence of a property that may repeat."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _rejected_properties(component: Any) -> set[str]:
    return {str(name).upper() for name, _ in getattr(component, "errors", None) or [] if name}


def _get(component: Any, prop_name: str) -> Any:
    """Read a property, treating values icalendar rejected as absent.

    Rejected values are reported once by ``collect_property_errors``.
    """
    if prop_name in _rejected_properties(component):
        return None
    return component.get(prop_name)


def _as_text(value: Any) -> Optional[str]:
    value = _first(value)
    if value is None:
        return None
    text = str(value)
    return text or None


def _as_int(value: Any) -> Optional[int]:
    value = _first(value)
    if value is None:
        return None
    return int(value)


def _field_warning(errors: list[str], prop_name: str, title: str, error: Exception) -> None:
    message = f'Failed to parse {prop_name} in event "{title}": {error}'
    logger.warning(message)
    errors.append(message)


def extract_title(component: Any) -> Optional[str]:
    """Extract SUMMARY; empty summaries count as missing."""
    return _as_text(_get(component, "SUMMARY"))


# Dates and durations


def normalize_duration(raw: Any) -> timedelta:
    """Decode a DURATION value into a timedelta.

    Accepted shapes:
        - ``timedelta`` or an icalendar value wrapping one (``.td`` / ``.dt``)
        - an ISO-8601 duration string such as ``"PT1H"`` or ``"-P1DT2H"``
        - a component mapping, e.g. ``{"hours": 1}`` or
          ``{"weeks": 0, "days": 1, "isNegative": True}``

    Raises:
        ValueError: If the value cannot be read as a duration
    """
    if isinstance(raw, timedelta):
        return raw
    for attr in ("td", "dt"):
        inner = getattr(raw, attr, None)
        if isinstance(inner, timedelta):
            return inner

    if isinstance(raw, bytes):
        raw = raw.decode()
    if isinstance(raw, str):
        return vDuration.from_ical(raw.strip())
    if isinstance(raw, Mapping):
        return _duration_from_mapping(raw)

    raise ValueError(f"unsupported duration value of type {type(raw).__name__}")


def _duration_from_mapping(raw: Mapping) -> timedelta:
    lowered = {str(key).lower(): value for key, value in raw.items()}
    if not any(key in lowered for key in _DURATION_KEYS):
        raise ValueError(f"duration mapping has no known components: {sorted(lowered)}")

    parts = {key: float(lowered.get(key) or 0) for key in _DURATION_KEYS}
    duration = timedelta(**parts)

    negative = lowered.get("isnegative", lowered.get("negative", False))
    if isinstance(negative, str):
        negative = negative.strip().lower() in ("true", "1")
    return -duration if negative else duration


def extract_event_dates(
    component: Any, title: str, errors: list[str]
) -> Optional[tuple[datetime, datetime]]:
    """Resolve (start, end) in UTC, synthesizing the end from DURATION when needed.

    Returns:
        Tuple of (start, end), or None when the event must be skipped
    """
    dtstart = _first(_get(component, "DTSTART"))
    if dtstart is None:
        return None
    try:
        start = ensure_utc(dtstart)
    except (TypeError, ValueError) as e:
        _field_warning(errors, "DTSTART", title, e)
        return None

    dtend = _first(_get(component, "DTEND"))
    if dtend is not None:
        try:
            return start, ensure_utc(dtend)
        except (TypeError, ValueError) as e:
            _field_warning(errors, "DTEND", title, e)
            return None

    raw_duration = _first(_get(component, "DURATION"))
    if raw_duration is None:
        return None
    try:
        return start, start + normalize_duration(raw_duration)
    except (TypeError, ValueError) as e:
        _field_warning(errors, "DURATION", title, e)
        return None


def extract_timestamps(component: Any) -> dict[str, Optional[datetime]]:
    """Extract DTSTAMP, CREATED and LAST-MODIFIED as UTC datetimes."""
    return {
        "dtstamp": to_utc_optional(_first(_get(component, "DTSTAMP"))),
        "created": to_utc_optional(_first(_get(component, "CREATED"))),
        "last_modified": to_utc_optional(_first(_get(component, "LAST-MODIFIED"))),
    }


# Scalar metadata


def extract_basic_metadata(component: Any, title: str, errors: list[str]) -> dict[str, Any]:
    """Extract description, location and the scalar classification fields."""
    metadata: dict[str, Any] = {
        "description": _as_text(_get(component, "DESCRIPTION")),
        "location": _as_text(_get(component, "LOCATION")),
        "status": _as_text(_get(component, "STATUS")),
        "url": _as_text(_get(component, "URL")),
        "comment": _as_text(_get(component, "COMMENT")),
        "contact": _as_text(_get(component, "CONTACT")),
        "transp": _as_text(_get(component, "TRANSP")),
    }

    event_class = _as_text(_get(component, "CLASS"))
    metadata["event_class"] = event_class.upper() if event_class else None

    for prop_name, key in (("PRIORITY", "priority"), ("SEQUENCE", "sequence")):
        try:
            metadata[key] = _as_int(_get(component, prop_name))
        except (TypeError, ValueError) as e:
            _field_warning(errors, prop_name, title, e)
            metadata[key] = None

    return metadata


def extract_text_list(component: Any, prop_name: str) -> Optional[list[str]]:
    """Collect a multi-valued text property (CATEGORIES, RESOURCES) into one list.

    Every occurrence of the property contributes. A value given as a single
    string is comma-split and trimmed; empty items are dropped.
    """
    raw = _get(component, prop_name)
    if raw is None:
        return None

    occurrences = raw if isinstance(raw, list) else [raw]
    values: list[str] = []
    for occurrence in occurrences:
        cats = getattr(occurrence, "cats", None)
        if cats is not None:
            items = [str(item) for item in cats]
        elif isinstance(occurrence, (list, tuple)):
            items = [str(item) for item in occurrence]
        else:
            items = str(occurrence).split(",")
        values.extend(item.strip() for item in items if item.strip())

    return values or None


# Recurrence


def normalize_rrule(raw: Any) -> str:
    """Render an RRULE as one canonical string (``FREQ=WEEKLY;COUNT=10;BYDAY=MO``).

    Accepts a ``vRecur``, a raw rule string (with or without ``RRULE:``) or a
    key/value mapping. Mappings may nest BY-parts under ``parts``. Strings
    icalendar cannot read are kept verbatim.

    Raises:
        ValueError: If the value is none of the accepted shapes
    """
    if isinstance(raw, vRecur):
        return raw.to_ical().decode()

    if isinstance(raw, bytes):
        raw = raw.decode()
    if isinstance(raw, str):
        text = raw.strip()
        if text.upper().startswith("RRULE:"):
            text = text[len("RRULE:") :]
        try:
            canonical = vRecur.from_ical(text).to_ical().decode()
        except ValueError as e:
            logger.debug("Keeping unrecognized RRULE verbatim: %s", e)
            return text
        # icalendar drops parts without "=", which can leave nothing behind
        return canonical or text

    if isinstance(raw, Mapping):
        flat: dict[str, Any] = {}
        for key, value in raw.items():
            if str(key).lower() == "parts" and isinstance(value, Mapping):
                flat.update(value)
            else:
                flat[key] = value
        return vRecur(flat).to_ical().decode()

    raise ValueError(f"unsupported RRULE value of type {type(raw).__name__}")


def extract_rrule(component: Any, title: str, errors: list[str]) -> Optional[str]:
    """Extract the first RRULE as a canonical string."""
    raw = _first(_get(component, "RRULE"))
    if raw is None:
        return None
    try:
        return normalize_rrule(raw) or None
    except (TypeError, ValueError) as e:
        _field_warning(errors, "RRULE", title, e)
        return None


def extract_date_list(component: Any, prop_name: str) -> Optional[list[datetime]]:
    """Flatten every occurrence of RDATE/EXDATE into one list of UTC datetimes.

    PERIOD values contribute their start. Occurrences icalendar rejected are
    skipped one by one; ``collect_property_errors`` reports them.
    """
    raw = component.get(prop_name)
    if raw is None:
        return None

    occurrences = raw if isinstance(raw, list) else [raw]
    dates: list[datetime] = []
    for occurrence in occurrences:
        try:
            dates.extend(_occurrence_dates(occurrence))
        except ValueError as e:
            logger.debug("Skipping unreadable %s value: %s", prop_name, e)

    return dates or None


def _occurrence_dates(occurrence: Any) -> list[datetime]:
    entries = getattr(occurrence, "dts", None)
    if entries is None:
        entries = occurrence if isinstance(occurrence, (list, tuple)) else [occurrence]

    dates: list[datetime] = []
    for entry in entries:
        value = getattr(entry, "dt", entry)
        if isinstance(value, tuple):
            value = value[0] if value else None
        converted = to_utc_optional(value)
        if converted is not None:
            dates.append(converted)
    return dates


def extract_recurrence_data(component: Any, title: str, errors: list[str]) -> dict[str, Any]:
    """Extract RRULE, RDATE and EXDATE. Recurrences are stored, never expanded."""
    return {
        "rrule": extract_rrule(component, title, errors),
        "rdate": extract_date_list(component, "RDATE"),
        "exdate": extract_date_list(component, "EXDATE"),
    }


# Geography


def normalize_geo(raw: Any) -> tuple[float, float]:
    """Decode a GEO value into (latitude, longitude).

    Accepts a ``vGeo``, a ``(lat, lon)`` pair, a mapping with
    ``lat``/``lon`` (or ``latitude``/``longitude``) keys, or a
    ``"lat;lon"`` string.

    Raises:
        ValueError: If the value cannot be read as coordinates
    """
    latitude = getattr(raw, "latitude", None)
    longitude = getattr(raw, "longitude", None)

    if latitude is None or longitude is None:
        if isinstance(raw, Mapping):
            lowered = {str(key).lower(): value for key, value in raw.items()}
            latitude = lowered.get("lat", lowered.get("latitude"))
            longitude = lowered.get("lon", lowered.get("longitude"))
        elif isinstance(raw, (str, bytes)):
            text = raw.decode() if isinstance(raw, bytes) else raw
            parts = text.split(";")
            if len(parts) != 2:
                raise ValueError(f"expected 'lat;lon', got {text!r}")
            latitude, longitude = parts
        elif isinstance(raw, (list, tuple)) and len(raw) == 2:
            latitude, longitude = raw
        else:
            raise ValueError(f"unsupported GEO value of type {type(raw).__name__}")

    if latitude is None or longitude is None:
        raise ValueError("GEO is missing latitude or longitude")
    return float(latitude), float(longitude)


def extract_geolocation(
    component: Any, title: str, errors: list[str]
) -> tuple[Optional[float], Optional[float]]:
    """Extract GEO as (latitude, longitude), or (None, None)."""
    raw = _first(_get(component, "GEO"))
    if raw is None:
        return None, None
    try:
        return normalize_geo(raw)
    except (TypeError, ValueError) as e:
        _field_warning(errors, "GEO", title, e)
        return None, None


# People


def extract_organizer(
    component: Any, title: str, errors: list[str]
) -> tuple[Optional[str], Optional[str]]:
    """Extract ORGANIZER as (name, email)."""
    raw = _first(_get(component, "ORGANIZER"))
    if raw is None:
        return None, None
    try:
        return parse_calendar_address(raw)
    except ValueError as e:
        _field_warning(errors, "ORGANIZER", title, e)
        return None, None


def extract_attendees(component: Any, title: str, errors: list[str]) -> list[ParsedAttendee]:
    """Extract every ATTENDEE; failures are reported per attendee."""
    return _attendee_parser.parse_attendees(component, title, errors)


# Alarms


def _format_trigger(raw: Any) -> str:
    value = getattr(raw, "dt", raw)
    if isinstance(value, timedelta):
        return vDuration(value).to_ical().decode()
    # datetime is a date too; format_ics_value keeps the distinction
    if isinstance(value, (datetime, date)):
        return format_ics_value(value)
    if isinstance(value, bytes):
        value = value.decode()
    if isinstance(value, str):
        return value.strip()
    raise ValueError(f"unsupported TRIGGER value of type {type(value).__name__}")


def parse_alarm_component(alarm: Any) -> Optional[ParsedAlarm]:
    """Parse one VALARM. Alarms without TRIGGER or ACTION are ignored (None).

    Raises:
        ValueError: If a present property holds an unusable value
    """
    trigger_raw = _first(alarm.get("TRIGGER"))
    action = _as_text(alarm.get("ACTION"))
    if trigger_raw is None or not action:
        return None

    trigger = _format_trigger(trigger_raw)
    if not trigger:
        return None

    duration = None
    duration_raw = _first(alarm.get("DURATION"))
    if duration_raw is not None:
        duration = vDuration(normalize_duration(duration_raw)).to_ical().decode()

    return ParsedAlarm(
        trigger=trigger,
        action=action,
        summary=_as_text(alarm.get("SUMMARY")),
        description=_as_text(alarm.get("DESCRIPTION")),
        duration=duration,
        repeat=_as_int(alarm.get("REPEAT")),
    )


def extract_alarms(component: Any, title: str, errors: list[str]) -> list[ParsedAlarm]:
    """Extract every VALARM subcomponent; failures are reported per alarm."""
    alarms: list[ParsedAlarm] = []
    for alarm_component in getattr(component, "subcomponents", []):
        if alarm_component.name != "VALARM":
            continue
        try:
            alarm = parse_alarm_component(alarm_component)
        except Exception as e:
            message = f'Failed to parse alarm in event "{title}": {e}'
            logger.warning(message)
            errors.append(message)
            continue
        if alarm:
            alarms.append(alarm)
    return alarms


# Everything else


def _format_recurrence_id(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    try:
        return format_ics_value(raw)
    except (TypeError, ValueError):
        return _as_text(raw)


def extract_simple_properties(component: Any) -> dict[str, Any]:
    """Extract identifiers, relations, color and the list-valued text properties."""
    return {
        "uid": _as_text(_get(component, "UID")),
        "recurrence_id": _format_recurrence_id(_first(_get(component, "RECURRENCE-ID"))),
        "related_to": _as_text(_get(component, "RELATED-TO")),
        "color": _as_text(_get(component, "COLOR")),
        "categories": extract_text_list(component, "CATEGORIES"),
        "resources": extract_text_list(component, "RESOURCES"),
    }


def collect_property_errors(component: Any, title: str) -> list[str]:
    """Report property values icalendar rejected while tokenizing the component."""
    return [
        f'Failed to parse {name or "property"} in event "{title}": {message}'
        for name, message in getattr(component, "errors", [])
    ]
