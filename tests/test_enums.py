"""Unit tests for RFC 5545 enumerations."""

import pytest

from icsengine.enums import (
    AlarmAction,
    AttendeeRole,
    AttendeeStatus,
    EventClass,
    EventStatus,
    EventTransparency,
    parse_alarm_action,
    parse_attendee_role,
    parse_attendee_status,
    parse_event_class,
    parse_event_status,
    parse_event_transparency,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "mapper, value, expected",
    [
        (parse_event_status, " confirmed ", EventStatus.CONFIRMED),
        (parse_event_status, "CANCELLED", EventStatus.CANCELLED),
        (parse_event_class, "confidential", EventClass.CONFIDENTIAL),
        (parse_event_transparency, "Transparent", EventTransparency.TRANSPARENT),
        (parse_attendee_role, "req-participant", AttendeeRole.REQ_PARTICIPANT),
        (parse_attendee_role, "NON-PARTICIPANT", AttendeeRole.NON_PARTICIPANT),
        (parse_attendee_status, "needs-action", AttendeeStatus.NEEDS_ACTION),
        (parse_alarm_action, "procedure", AlarmAction.PROCEDURE),
    ],
)
def test_known_values(mapper, value, expected):
    """Test that known values map regardless of case and padding."""
    assert mapper(value) is expected


@pytest.mark.parametrize(
    "mapper",
    [
        parse_event_status,
        parse_event_class,
        parse_event_transparency,
        parse_attendee_role,
        parse_attendee_status,
        parse_alarm_action,
    ],
)
@pytest.mark.parametrize("value", [None, "", "  ", "unknown"])
def test_unknown_values(mapper, value):
    """Test that unknown or empty values map to None."""
    assert mapper(value) is None


def test_members_compare_as_strings():
    """Test that enum members behave as their ICS text."""
    assert EventStatus.TENTATIVE == "TENTATIVE"
    assert AttendeeRole.OPT_PARTICIPANT.value == "OPT-PARTICIPANT"
    assert AttendeeStatus.TENTATIVE != EventStatus.CONFIRMED
