"""Storage-free import, merge, cleanup and export orchestration.

These helpers do everything the calendar service does around the parser,
generator and duplicate detector except talking to the database: callers
fetch and persist records, this module decides what to persist.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar, Union

from .datetime_utils import ensure_utc, format_iso_utc, parse_iso_datetime, utc_now
from .duplicate_detection import (
    ConfigLike,
    deduplicate_events,
    find_duplicates_against_existing,
    get_duplicate_ids,
)
from .enums import (
    parse_alarm_action,
    parse_attendee_role,
    parse_attendee_status,
    parse_event_class,
    parse_event_status,
    parse_event_transparency,
)
from .event_parser import parse_ics_content
from .exceptions import ICSFileTooLargeError, ICSImportError
from .models import AlarmData, AttendeeData, DuplicateCandidate, EventData, ParsedEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MiB

T = TypeVar("T")


@dataclass
class ImportPlan:
    """Events to persist for one ICS import, plus the parser's warnings."""

    events: list[ParsedEvent] = field(default_factory=list)
    skipped_duplicates: int = 0
    warnings: list[str] = field(default_factory=list)


@dataclass
class MergePlan(Generic[T]):
    """Events for a merged calendar."""

    events: list[T] = field(default_factory=list)
    removed_duplicates: int = 0


@dataclass
class CleanupPlan:
    """Stored events to delete from one calendar."""

    duplicate_ids: list[str] = field(default_factory=list)
    remaining_count: int = 0


def validate_file_size(content: Union[str, bytes], max_bytes: int = DEFAULT_MAX_FILE_SIZE) -> int:
    """Reject ICS content larger than ``max_bytes`` (measured as UTF-8).

    Returns:
        Size of the content in bytes

    Raises:
        ICSFileTooLargeError: If the content exceeds the limit
    """
    size_bytes = len(content.encode("utf-8")) if isinstance(content, str) else len(content)
    if size_bytes > max_bytes:
        raise ICSFileTooLargeError(
            f"File too large. Maximum allowed size: {max_bytes / 1024 / 1024:g}MB. "
            f"Current size: {size_bytes / 1024 / 1024:.2f}MB",
            size_bytes=size_bytes,
            limit_bytes=max_bytes,
        )
    return size_bytes


def _decode(content: Union[str, bytes]) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8-sig")
    return content


def prepare_import(
    content: Union[str, bytes],
    existing: Optional[Iterable[DuplicateCandidate]] = None,
    config: ConfigLike = None,
    *,
    skip_duplicates: bool = False,
    max_bytes: int = DEFAULT_MAX_FILE_SIZE,
) -> ImportPlan:
    """Validate, parse and (optionally) filter an ICS upload against a calendar.

    Args:
        content: Raw ICS upload
        existing: Events already stored in the target calendar
        config: Duplicate detection policy
        skip_duplicates: Drop parsed events that duplicate ``existing``
        max_bytes: Upload size limit

    Returns:
        ImportPlan with the events to store

    Raises:
        ICSFileTooLargeError: If the upload is too large
        ICSImportError: If nothing could be parsed and the parser reported errors
    """
    validate_file_size(content, max_bytes)
    result = parse_ics_content(_decode(content))

    if result.is_fatal:
        raise ICSImportError(
            f"Unable to parse ICS file: {', '.join(result.errors)}", warnings=result.errors
        )

    events = list(result.events)
    skipped = 0
    if skip_duplicates and existing is not None:
        dedup = find_duplicates_against_existing(events, existing, config)
        events = dedup.unique
        skipped = len(dedup.duplicates)
        if skipped:
            logger.info(f"Skipping {skipped} events already present in the calendar")

    return ImportPlan(events=events, skipped_duplicates=skipped, warnings=list(result.errors))


def plan_merge(
    event_lists: Iterable[Iterable[T]],
    remove_duplicates: bool = False,
    config: ConfigLike = None,
) -> MergePlan[T]:
    """Combine the events of several calendars, optionally dropping duplicates.

    Calendars earlier in ``event_lists`` win when duplicates are removed.

    Raises:
        ValueError: If fewer than two calendars are given
    """
    calendars = [list(events) for events in event_lists]
    if len(calendars) < 2:
        raise ValueError("At least two calendars are required to merge")

    all_events = [event for events in calendars for event in events]
    if not remove_duplicates:
        return MergePlan(events=all_events)

    unique = deduplicate_events(all_events, config).unique
    return MergePlan(events=unique, removed_duplicates=len(all_events) - len(unique))


def plan_duplicate_cleanup(events: Iterable[Any], config: ConfigLike = None) -> CleanupPlan:
    """Decide which stored events of one calendar are duplicates to delete."""
    events = list(events)
    duplicate_ids = get_duplicate_ids(events, config)
    return CleanupPlan(duplicate_ids=duplicate_ids, remaining_count=len(events) - len(duplicate_ids))


def next_sequence(current: Optional[int]) -> int:
    """SEQUENCE for the next revision of an event: 0 when new, otherwise incremented."""
    if current is None:
        return 0
    return current + 1


# Denormalization for export


def _unique_strings(values: Iterable[Any]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        text = str(value).strip()
        if text:
            seen.setdefault(text, None)
    return list(seen)


def _join_list(values: Any, item_key: str) -> Optional[str]:
    """Join a stored list (plain strings or ``{item_key: ...}`` rows) with commas."""
    if not values:
        return None
    if isinstance(values, str):
        values = values.split(",")
    items = [value.get(item_key) if isinstance(value, Mapping) else value for value in values]
    joined = ",".join(_unique_strings(item for item in items if item is not None))
    return joined or None


def _dates_json(dates: Optional[Iterable[Union[datetime, str]]]) -> Optional[str]:
    if not dates:
        return None
    encoded = [
        format_iso_utc(parse_iso_datetime(date) if isinstance(date, str) else date) for date in dates
    ]
    return json.dumps(encoded) if encoded else None


def to_event_data(record: Mapping[str, Any]) -> EventData:
    """Denormalize a stored event record for the generator.

    ``categories``/``resources`` may be lists of strings or of
    ``{"category": ...}``/``{"resource": ...}`` rows. Recurrence dates may be
    given as ``rdate``/``exdate`` lists or as ``recurrence_dates`` rows with
    ``type`` (RDATE/EXDATE) and ``date``.
    """
    payload = dict(record)
    payload["categories"] = _join_list(record.get("categories"), "category")
    payload["resources"] = _join_list(record.get("resources"), "resource")

    rows = payload.pop("recurrence_dates", None) or []
    for key in ("rdate", "exdate"):
        value = record.get(key)
        # Already-encoded JSON strings pass through untouched
        if isinstance(value, str):
            continue
        dates = list(value or [])
        dates.extend(row["date"] for row in rows if str(row.get("type", "")).lower() == key)
        payload[key] = _dates_json(dates)

    return EventData.model_validate(payload)


def parsed_to_event_data(event: ParsedEvent, event_id: str, now: Optional[datetime] = None) -> EventData:
    """Turn a freshly parsed event into the record the service would store.

    Enumerated fields are mapped to their canonical value (unknown values
    become None), SEQUENCE defaults to 0 and DTSTAMP to ``now``.

    Raises:
        ICSImportError: If an alarm has an action that cannot be stored
    """
    now = now or utc_now()

    alarms = []
    for alarm in event.alarms or []:
        action = parse_alarm_action(alarm.action)
        if action is None:
            raise ICSImportError(f"Invalid alarm action: {alarm.action}")
        alarms.append(
            AlarmData(
                trigger=alarm.trigger,
                action=action.value,
                summary=alarm.summary,
                description=alarm.description,
                duration=alarm.duration,
                repeat=alarm.repeat,
            )
        )

    attendees = []
    for attendee in event.attendees or []:
        role = parse_attendee_role(attendee.role)
        status = parse_attendee_status(attendee.status)
        attendees.append(
            AttendeeData(
                email=attendee.email,
                name=attendee.name,
                role=role.value if role else None,
                status=status.value if status else None,
                rsvp=attendee.rsvp,
            )
        )

    status = parse_event_status(event.status)
    event_class = parse_event_class(event.event_class)
    transp = parse_event_transparency(event.transp)

    return EventData(
        id=event_id,
        title=event.title,
        start_date=event.start_date,
        end_date=event.end_date,
        description=event.description,
        location=event.location,
        status=status.value if status else None,
        priority=event.priority,
        categories=_join_list(event.categories, "category"),
        url=event.url,
        event_class=event_class.value if event_class else None,
        comment=event.comment,
        contact=event.contact,
        resources=_join_list(event.resources, "resource"),
        sequence=event.sequence if event.sequence is not None else 0,
        transp=transp.value if transp else None,
        rrule=event.rrule,
        rdate=_dates_json(event.rdate),
        exdate=_dates_json(event.exdate),
        geo_latitude=event.geo_latitude,
        geo_longitude=event.geo_longitude,
        organizer_name=event.organizer_name,
        organizer_email=event.organizer_email,
        uid=event.uid,
        dtstamp=event.dtstamp or now,
        created=event.created,
        last_modified=event.last_modified,
        recurrence_id=event.recurrence_id,
        related_to=event.related_to,
        color=event.color,
        attendees=attendees,
        alarms=alarms,
        created_at=now,
        updated_at=now,
    )


def select_export_events(
    events: Iterable[EventData],
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    categories: Optional[Iterable[str]] = None,
    future_only: bool = False,
    now: Optional[datetime] = None,
) -> list[EventData]:
    """Filter events for export by start date range and categories.

    ``future_only`` replaces ``date_from`` with the current time. An event
    passes the category filter when it has at least one of ``categories``.
    """
    if future_only:
        lower = ensure_utc(now or utc_now())
    else:
        lower = ensure_utc(date_from) if date_from else None
    upper = ensure_utc(date_to) if date_to else None
    wanted = set(categories or [])

    selected = []
    for event in events:
        if event.start_date is None:
            continue
        start = ensure_utc(event.start_date)
        if lower is not None and start < lower:
            continue
        if upper is not None and start > upper:
            continue
        if wanted:
            event_categories = {item.strip() for item in (event.categories or "").split(",")}
            if not wanted & event_categories:
                continue
        selected.append(event)
    return selected
