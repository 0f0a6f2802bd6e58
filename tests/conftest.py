"""Shared fixtures for icsengine tests."""

import logging
from collections.abc import Generator
from typing import Any

import pytest

from icsengine.config_loader import ENV_OVERRIDES


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Tests crossing several modules")


def build_ics(*events: str, prodid: str = "-//Test//Test//EN") -> str:
    """Wrap VEVENT bodies in a minimal VCALENDAR."""
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", f"PRODID:{prodid}"]
    for body in events:
        lines.append("BEGIN:VEVENT")
        lines.extend(line.strip() for line in body.strip().splitlines() if line.strip())
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture
def make_ics() -> Any:
    """Expose build_ics to tests that assemble their own events."""
    return build_ics


@pytest.fixture
def simple_ics() -> str:
    """Two well-formed events and nothing else."""
    return build_ics(
        """
        UID:standup-1@example.com
        SUMMARY:Daily Standup
        DTSTART:20250101T100000Z
        DTEND:20250101T101500Z
        """,
        """
        UID:review-1@example.com
        SUMMARY:Design Review
        DTSTART:20250102T140000Z
        DTEND:20250102T150000Z
        LOCATION:Room 4
        """,
    )


@pytest.fixture
def rich_ics() -> str:
    """One event exercising most supported properties."""
    return build_ics(
        """
        UID:rich-1@example.com
        SUMMARY:Quarterly Planning
        DESCRIPTION:Agenda: budget\\, hiring\\; roadmap\\nBring laptops
        LOCATION:HQ Boardroom
        DTSTART:20250301T090000Z
        DTEND:20250301T120000Z
        DTSTAMP:20250201T080000Z
        CREATED:20250115T080000Z
        LAST-MODIFIED:20250120T080000Z
        STATUS:confirmed
        PRIORITY:5
        CATEGORIES:Work,Planning
        CATEGORIES:Quarterly
        URL:https://example.com/planning
        CLASS:private
        COMMENT:Lunch provided
        CONTACT:Office Manager
        RESOURCES:Projector
        SEQUENCE:2
        TRANSP:OPAQUE
        RRULE:BYDAY=MO;FREQ=WEEKLY;COUNT=10
        RDATE:20250310T090000Z,20250317T090000Z
        EXDATE:20250324T090000Z
        GEO:37.386013;-122.082932
        ORGANIZER;CN=Jane Doe:mailto:jane@example.com
        ATTENDEE;CN=Bob;ROLE=REQ-PARTICIPANT;PARTSTAT=ACCEPTED;RSVP=TRUE:mailto:bob@example.com
        ATTENDEE;ROLE=OPT-PARTICIPANT;PARTSTAT=TENTATIVE:mailto:alice@example.com
        RELATED-TO:parent-1@example.com
        COLOR:dodgerblue
        BEGIN:VALARM
        TRIGGER:-PT15M
        ACTION:DISPLAY
        DESCRIPTION:Planning starts soon
        END:VALARM
        BEGIN:VALARM
        TRIGGER;VALUE=DATE-TIME:20250301T080000Z
        ACTION:EMAIL
        SUMMARY:Planning today
        DESCRIPTION:Reminder mail
        REPEAT:2
        DURATION:PT5M
        END:VALARM
        """,
    )


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> None:
    """Clear ICSENGINE_* variables so host settings never leak into tests."""
    for name in (*ENV_OVERRIDES, "ICSENGINE_DEBUG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, Any, None]:
    """Restore root and icsengine logger levels after tests that configure logging.

    Handlers are left alone: pytest adds and removes its capture handlers
    around every test phase, and tests that need a bare root logger patch
    ``root.handlers`` inside the test body.
    """
    root = logging.getLogger()
    saved_level = root.level
    yield
    root.setLevel(saved_level)
    for name in ("icsengine", "icalendar", "yaml", "asyncio"):
        logging.getLogger(name).setLevel(logging.NOTSET)
