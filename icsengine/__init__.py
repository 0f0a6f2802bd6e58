"""icsengine - iCalendar (RFC 5545) import/export engine.

Parses ICS text into structured events, generates ICS text from stored
events, and detects duplicate events across calendars.
"""

__version__ = "0.1.0"

from .duplicate_detection import (
    deduplicate_events,
    find_duplicates_against_existing,
    get_duplicate_ids,
    is_duplicate,
)
from .event_parser import parse_ics_content
from .exceptions import (
    ICSConfigError,
    ICSError,
    ICSFileTooLargeError,
    ICSGenerationError,
    ICSImportError,
    ICSParseError,
)
from .generator import generate_ics
from .models import (
    AlarmData,
    AttendeeData,
    CalendarData,
    DeduplicationResult,
    DuplicateCheckEvent,
    DuplicateDetectionConfig,
    EventData,
    ParsedAlarm,
    ParsedAttendee,
    ParsedEvent,
    ParseResult,
)

__all__ = [
    "AlarmData",
    "AttendeeData",
    "CalendarData",
    "DeduplicationResult",
    "DuplicateCheckEvent",
    "DuplicateDetectionConfig",
    "EventData",
    "ICSConfigError",
    "ICSError",
    "ICSFileTooLargeError",
    "ICSGenerationError",
    "ICSImportError",
    "ICSParseError",
    "ParseResult",
    "ParsedAlarm",
    "ParsedAttendee",
    "ParsedEvent",
    "deduplicate_events",
    "find_duplicates_against_existing",
    "generate_ics",
    "get_duplicate_ids",
    "is_duplicate",
    "parse_ics_content",
]
