"""RFC 5545 enumerated property values and tolerant mappers."""

from enum import Enum
from typing import Any, Optional, TypeVar


class EventStatus(str, Enum):
    """VEVENT STATUS values."""

    CONFIRMED = "CONFIRMED"
    TENTATIVE = "TENTATIVE"
    CANCELLED = "CANCELLED"


class EventClass(str, Enum):
    """VEVENT CLASS values."""

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    CONFIDENTIAL = "CONFIDENTIAL"


class EventTransparency(str, Enum):
    """VEVENT TRANSP values."""

    OPAQUE = "OPAQUE"
    TRANSPARENT = "TRANSPARENT"


class AttendeeRole(str, Enum):
    """ATTENDEE ROLE parameter values."""

    CHAIR = "CHAIR"
    REQ_PARTICIPANT = "REQ-PARTICIPANT"
    OPT_PARTICIPANT = "OPT-PARTICIPANT"
    NON_PARTICIPANT = "NON-PARTICIPANT"


class AttendeeStatus(str, Enum):
    """ATTENDEE PARTSTAT parameter values for VEVENT."""

    NEEDS_ACTION = "NEEDS-ACTION"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    TENTATIVE = "TENTATIVE"
    DELEGATED = "DELEGATED"


class AlarmAction(str, Enum):
    """VALARM ACTION values."""

    AUDIO = "AUDIO"
    DISPLAY = "DISPLAY"
    EMAIL = "EMAIL"
    PROCEDURE = "PROCEDURE"


E = TypeVar("E", bound=Enum)


def _parse_enum(enum_cls: type[E], value: Any) -> Optional[E]:
    if value is None:
        return None
    normalized = str(value).strip().upper()
    if not normalized:
        return None
    try:
        return enum_cls(normalized)
    except ValueError:
        return None


def parse_event_status(value: Any) -> Optional[EventStatus]:
    """Map free text to an EventStatus, or None when it is not a known value."""
    return _parse_enum(EventStatus, value)


def parse_event_class(value: Any) -> Optional[EventClass]:
    """Map free text to an EventClass, or None when it is not a known value."""
    return _parse_enum(EventClass, value)


def parse_event_transparency(value: Any) -> Optional[EventTransparency]:
    """Map free text to an EventTransparency, or None when it is not a known value."""
    return _parse_enum(EventTransparency, value)


def parse_attendee_role(value: Any) -> Optional[AttendeeRole]:
    """Map free text to an AttendeeRole, or None when it is not a known value."""
    return _parse_enum(AttendeeRole, value)


def parse_attendee_status(value: Any) -> Optional[AttendeeStatus]:
    """Map free text to an AttendeeStatus, or None when it is not a known value."""
    return _parse_enum(AttendeeStatus, value)


def parse_alarm_action(value: Any) -> Optional[AlarmAction]:
    """Map free text to an AlarmAction, or None when it is not a known value."""
    return _parse_enum(AlarmAction, value)
