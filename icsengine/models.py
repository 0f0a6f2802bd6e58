"""Data models for ICS parsing, generation and duplicate detection."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, Optional, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer

# Parser output models


class ParsedAttendee(BaseModel):
    """Attendee extracted from an ATTENDEE property."""

    email: str = Field(..., description="Attendee email address")
    name: Optional[str] = Field(default=None, description="Common name (CN)")
    role: Optional[str] = Field(default=None, description="ROLE parameter, free text")
    status: Optional[str] = Field(default=None, description="PARTSTAT parameter, free text")
    rsvp: bool = Field(default=False, description="RSVP parameter")

    model_config = ConfigDict(frozen=True)


class ParsedAlarm(BaseModel):
    """Alarm extracted from a VALARM subcomponent."""

    trigger: str = Field(..., description="ISO-8601 duration or absolute ICS date-time")
    action: str = Field(..., description="AUDIO, DISPLAY, EMAIL or PROCEDURE")
    summary: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[str] = None
    repeat: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class ParsedEvent(BaseModel):
    """One VEVENT turned into a structured, immutable record."""

    title: str = Field(..., description="SUMMARY, or 'Untitled Event'")
    start_date: datetime = Field(..., description="DTSTART in UTC")
    end_date: datetime = Field(..., description="DTEND, or DTSTART + DURATION, in UTC")
    description: Optional[str] = None
    location: Optional[str] = None

    # Basic metadata
    status: Optional[str] = None
    priority: Optional[int] = None
    categories: Optional[list[str]] = None
    url: Optional[str] = None
    event_class: Optional[str] = Field(default=None, alias="class")
    comment: Optional[str] = None
    contact: Optional[str] = None
    resources: Optional[list[str]] = None
    sequence: Optional[int] = None
    transp: Optional[str] = None

    # Recurrence (stored, never expanded)
    rrule: Optional[str] = None
    rdate: Optional[list[datetime]] = None
    exdate: Optional[list[datetime]] = None

    # Geography
    geo_latitude: Optional[float] = None
    geo_longitude: Optional[float] = None

    # Organizer
    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None

    # Additional RFC 5545 properties
    uid: Optional[str] = None
    dtstamp: Optional[datetime] = None
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    recurrence_id: Optional[str] = None
    related_to: Optional[str] = None

    # RFC 7986 extensions
    color: Optional[str] = None

    # Relations
    attendees: Optional[list[ParsedAttendee]] = None
    alarms: Optional[list[ParsedAlarm]] = None

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_serializer("start_date", "end_date", "dtstamp", "created", "last_modified", when_used="unless-none")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime fields to ISO format."""
        return dt.isoformat()


class ParseResult(BaseModel):
    """Result of parsing one ICS document.

    ``errors`` holds human-readable warnings. They only mean the import failed
    when no event could be produced at all.
    """

    events: list[ParsedEvent] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def has_events(self) -> bool:
        """Check if at least one event was parsed."""
        return bool(self.events)

    @property
    def is_fatal(self) -> bool:
        """Check if the parse produced nothing usable and reported errors."""
        return not self.events and bool(self.errors)


# Duplicate detection models


class DuplicateCandidate(Protocol):
    """Minimal shape any event must expose to take part in duplicate detection."""

    uid: Optional[str]
    title: str
    start_date: datetime
    end_date: datetime
    location: Optional[str]


class DuplicateCheckEvent(BaseModel):
    """Minimal projection of a stored or parsed event for duplicate checks."""

    id: str
    uid: Optional[str] = None
    title: str
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None


class DuplicateDetectionConfig(BaseModel):
    """Policy for deciding whether two events are the same logical event."""

    date_tolerance: int = Field(
        default=60000,
        gt=0,
        alias="dateTolerance",
        description="Tolerance in milliseconds for start/end comparison",
    )
    use_uid: bool = Field(default=True, alias="useUid", description="Compare by UID when both have one")
    use_title: bool = Field(default=True, alias="useTitle", description="Require normalized titles to match")
    use_location: bool = Field(
        default=False, alias="useLocation", description="Require normalized locations to match"
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)


T = TypeVar("T")


@dataclass
class DeduplicationResult(Generic[T]):
    """Partition of events into unique ones and detected duplicates.

    ``pairs`` maps each duplicate to the kept event it matched, in input order.
    """

    unique: list[T] = field(default_factory=list)
    duplicates: list[T] = field(default_factory=list)
    pairs: list[tuple[T, T]] = field(default_factory=list)


# Generator input models (denormalized by the storage layer)


class AttendeeData(BaseModel):
    """Stored attendee as handed to the generator."""

    email: str
    name: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None
    rsvp: bool = False


class AlarmData(BaseModel):
    """Stored alarm as handed to the generator."""

    trigger: str
    action: str
    summary: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[str] = None
    repeat: Optional[int] = None


class EventData(BaseModel):
    """Stored event, denormalized for export.

    ``categories`` and ``resources`` are comma-joined strings; ``rdate`` and
    ``exdate`` are JSON arrays of ISO-8601 strings.
    """

    id: str
    title: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None

    status: Optional[str] = None
    priority: Optional[int] = None
    categories: Optional[str] = None
    url: Optional[str] = None
    event_class: Optional[str] = Field(default=None, alias="class")
    comment: Optional[str] = None
    contact: Optional[str] = None
    resources: Optional[str] = None
    sequence: Optional[int] = None
    transp: Optional[str] = None

    rrule: Optional[str] = None
    rdate: Optional[str] = None
    exdate: Optional[str] = None

    geo_latitude: Optional[float] = None
    geo_longitude: Optional[float] = None

    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None

    uid: Optional[str] = None
    dtstamp: Optional[datetime] = None
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    recurrence_id: Optional[str] = None
    related_to: Optional[str] = None

    color: Optional[str] = None

    attendees: list[AttendeeData] = Field(default_factory=list)
    alarms: list[AlarmData] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)


class CalendarData(BaseModel):
    """A calendar and its events, ready for export."""

    name: str
    events: list[EventData] = Field(default_factory=list)
