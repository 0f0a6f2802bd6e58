"""Attendee and organizer parsing for ICS event processing.

ORGANIZER and ATTENDEE values show up in three shapes in the wild:
``jane@example.com``, ``mailto:jane@example.com`` and
``CN=Jane:mailto:jane@example.com``. All of them normalize to the same
``(name, email)`` pair. A ``CN`` property parameter always wins for the name.
"""

import logging
import re
from typing import Any, Optional

from .models import ParsedAttendee

logger = logging.getLogger(__name__)

_EMBEDDED_CN_RE = re.compile(r"^CN=([^:]+):mailto:(.+)$", re.IGNORECASE)
_MAILTO_RE = re.compile(r"^mailto:", re.IGNORECASE)


def _param(prop: Any, name: str) -> Optional[str]:
    params = getattr(prop, "params", None)
    if not params:
        return None
    value = params.get(name)
    if value is None:
        return None
    # Multi-valued parameters come back as lists
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    text = str(value).strip() if value is not None else ""
    return text or None


def parse_rsvp(value: Any) -> bool:
    """Interpret an RSVP parameter, accepting bools and ``TRUE``/``FALSE`` in any case."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().upper() == "TRUE"
    return False


def parse_calendar_address(prop: Any) -> tuple[Optional[str], Optional[str]]:
    """Split a CAL-ADDRESS property into (name, email).

    Args:
        prop: ``vCalAddress`` (or plain string) value of ORGANIZER/ATTENDEE

    Returns:
        Tuple of (name, email). Email is None when the value is empty.

    Raises:
        ValueError: If the value is not textual
    """
    if not isinstance(prop, str):
        raise ValueError(f"unsupported address value of type {type(prop).__name__}")

    text = prop.strip()
    name: Optional[str] = None

    match = _EMBEDDED_CN_RE.match(text)
    if match:
        name = match.group(1).strip() or None
        email = match.group(2).strip()
    else:
        email = _MAILTO_RE.sub("", text).strip()

    cn_param = _param(prop, "CN")
    if cn_param:
        name = cn_param

    return name, email or None


class AttendeeParser:
    """Parser for iCalendar ATTENDEE properties."""

    def parse_attendee(self, attendee_prop: Any) -> Optional[ParsedAttendee]:
        """Parse one ATTENDEE property.

        Args:
            attendee_prop: iCalendar ATTENDEE property

        Returns:
            ParsedAttendee, or None when the property carries no email

        Raises:
            ValueError: If the property value cannot be read as an address
        """
        name, email = parse_calendar_address(attendee_prop)
        if not email:
            logger.debug("Skipping attendee without email: %r", attendee_prop)
            return None

        params = getattr(attendee_prop, "params", {}) or {}
        return ParsedAttendee(
            email=email,
            name=name,
            role=_param(attendee_prop, "ROLE"),
            status=_param(attendee_prop, "PARTSTAT"),
            rsvp=parse_rsvp(params.get("RSVP")),
        )

    def parse_attendees(self, component: Any, title: str, errors: list[str]) -> list[ParsedAttendee]:
        """Parse all attendees from an iCalendar component.

        A failing attendee is reported in ``errors`` and the rest continue.

        Args:
            component: iCalendar component (e.g., VEVENT)
            title: Event title used in warning messages
            errors: Warning sink

        Returns:
            List of parsed attendees, in document order
        """
        attendees: list[ParsedAttendee] = []

        attendee_props = component.get("ATTENDEE", [])

        # Ensure attendee_props is a list
        if not isinstance(attendee_props, list):
            attendee_props = [attendee_props] if attendee_props else []

        for attendee_prop in attendee_props:
            try:
                attendee = self.parse_attendee(attendee_prop)
            except Exception as e:
                message = f'Failed to parse attendee in event "{title}": {e}'
                logger.warning(message)
                errors.append(message)
                continue
            if attendee:
                attendees.append(attendee)

        return attendees
