"""ICS generation for calendar export.

Builds one VCALENDAR from denormalized event records. Serialization (text
escaping, CRLF line endings, 75-octet folding) is left to icalendar.
"""

import json
import logging
from datetime import date, datetime
from typing import Optional

from icalendar import Alarm, Calendar, Event
from icalendar.prop import vCalAddress, vCategory, vDDDLists, vDuration, vRecur

from .datetime_utils import ensure_utc, parse_iso_datetime, utc_now
from .durations import is_absolute_trigger
from .exceptions import ICSGenerationError
from .models import AlarmData, AttendeeData, CalendarData, EventData

logger = logging.getLogger(__name__)

DEFAULT_PRODID = "-//icsengine//icsengine//EN"
DEFAULT_UID_DOMAIN = "icsengine"


def _split_list(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_absolute(value: str) -> datetime:
    """Parse ``YYYYMMDDTHHMMSS[Z]``; floating values are read as UTC."""
    return ensure_utc(datetime.strptime(value.rstrip("Z"), "%Y%m%dT%H%M%S"))


class ICSGenerator:
    """Renders CalendarData as an RFC 5545 document."""

    def __init__(self, prodid: str = DEFAULT_PRODID, uid_domain: str = DEFAULT_UID_DOMAIN):
        self.prodid = prodid
        self.uid_domain = uid_domain

    def generate(self, calendar: CalendarData) -> str:
        """Generate ICS text for a calendar.

        Args:
            calendar: Calendar name and its events, in export order

        Returns:
            ICS document with CRLF line endings

        Raises:
            ICSGenerationError: If an event lacks a start or end date
        """
        cal = Calendar()
        cal.add("version", "2.0")
        cal.add("prodid", self.prodid)
        cal.add("calscale", "GREGORIAN")
        cal.add("method", "PUBLISH")
        cal.add("x-wr-calname", calendar.name)

        for event_data in calendar.events:
            cal.add_component(self.build_event(event_data))

        logger.debug(f"Generated ICS for '{calendar.name}' with {len(calendar.events)} events")
        return cal.to_ical().decode("utf-8")

    def build_event(self, data: EventData) -> Event:
        """Build one VEVENT component."""
        if data.start_date is None or data.end_date is None:
            raise ICSGenerationError(
                f'Event "{data.title}" is missing start or end date', event_id=data.id
            )

        event = Event()
        self._add_basic_properties(event, data)
        self._add_metadata(event, data)
        self._add_recurrence(event, data)
        self._add_extensions(event, data)
        self._add_organizer(event, data)

        for attendee in data.attendees:
            event.add("attendee", self._build_attendee(attendee), encode=0)

        for alarm_data in data.alarms:
            alarm = self._build_alarm(alarm_data, data)
            if alarm is not None:
                event.add_component(alarm)

        return event

    def _add_basic_properties(self, event: Event, data: EventData) -> None:
        event.add("uid", data.uid or f"{data.id}@{self.uid_domain}")
        event.add("dtstamp", ensure_utc(data.dtstamp or data.created_at or utc_now()))
        event.add("dtstart", ensure_utc(data.start_date))
        event.add("dtend", ensure_utc(data.end_date))

        if data.title:
            event.add("summary", data.title)
        if data.description:
            event.add("description", data.description)
        if data.location:
            event.add("location", data.location)

        created = data.created or data.created_at
        if created:
            event.add("created", ensure_utc(created))
        last_modified = data.last_modified or data.updated_at
        if last_modified:
            event.add("last-modified", ensure_utc(last_modified))

    def _add_metadata(self, event: Event, data: EventData) -> None:
        if data.status:
            event.add("status", data.status.upper())
        if data.priority is not None:
            event.add("priority", data.priority)

        categories = _split_list(data.categories)
        if categories:
            event.add("categories", vCategory(categories), encode=0)

        if data.url:
            event.add("url", data.url)
        if data.event_class:
            event.add("class", data.event_class.upper())
        if data.comment:
            event.add("comment", data.comment)
        if data.contact:
            event.add("contact", data.contact)

        resources = _split_list(data.resources)
        if resources:
            event.add("resources", vCategory(resources), encode=0)

        if data.sequence is not None:
            event.add("sequence", data.sequence)
        if data.transp:
            event.add("transp", data.transp.upper())

    def _add_recurrence(self, event: Event, data: EventData) -> None:
        if data.rrule:
            rule = data.rrule.strip()
            if rule.upper().startswith("RRULE:"):
                rule = rule[len("RRULE:") :]
            try:
                recur = vRecur.from_ical(rule)
                if not recur:
                    raise ValueError(f"no rule parts in {rule!r}")
                event.add("rrule", recur, encode=0)
            except ValueError as e:
                logger.warning(f"Skipping invalid RRULE for event {data.id}: {e}")

        for prop_name, raw in (("rdate", data.rdate), ("exdate", data.exdate)):
            dates = self._decode_date_list(raw, prop_name, data.id)
            if dates:
                event.add(prop_name, vDDDLists(dates), encode=0)

    def _decode_date_list(self, raw: Optional[str], prop_name: str, event_id: str) -> list[datetime]:
        if not raw:
            return []
        try:
            values = json.loads(raw)
            if not isinstance(values, list):
                raise ValueError(f"expected a JSON array, got {type(values).__name__}")
            return [parse_iso_datetime(str(value)) for value in values]
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            logger.warning(f"Skipping invalid {prop_name.upper()} for event {event_id}: {e}")
            return []

    def _add_extensions(self, event: Event, data: EventData) -> None:
        if data.geo_latitude is not None and data.geo_longitude is not None:
            event.add("geo", (data.geo_latitude, data.geo_longitude))

        if data.recurrence_id:
            recurrence_id = self._decode_recurrence_id(data.recurrence_id)
            if recurrence_id is None:
                logger.warning(
                    f"Skipping invalid RECURRENCE-ID for event {data.id}: {data.recurrence_id!r}"
                )
            else:
                event.add("recurrence-id", recurrence_id)

        if data.related_to:
            event.add("related-to", data.related_to)
        if data.color:
            event.add("color", data.color)

    def _decode_recurrence_id(self, value: str) -> Optional[date]:
        clean = value.strip()
        try:
            if len(clean) == 8 and clean.isdigit():
                return datetime.strptime(clean, "%Y%m%d").date()
            return _parse_absolute(clean)
        except ValueError:
            pass
        try:
            return parse_iso_datetime(clean)
        except ValueError:
            return None

    def _add_organizer(self, event: Event, data: EventData) -> None:
        if not data.organizer_email:
            return
        organizer = vCalAddress(f"mailto:{data.organizer_email}")
        if data.organizer_name:
            organizer.params["CN"] = data.organizer_name
        event.add("organizer", organizer, encode=0)

    def _build_attendee(self, attendee: AttendeeData) -> vCalAddress:
        address = vCalAddress(f"mailto:{attendee.email}")
        if attendee.name:
            address.params["CN"] = attendee.name
        if attendee.role:
            address.params["ROLE"] = attendee.role.upper()
        if attendee.status:
            address.params["PARTSTAT"] = attendee.status.upper()
        if attendee.rsvp:
            address.params["RSVP"] = "TRUE"
        return address

    def _build_alarm(self, data: AlarmData, event: EventData) -> Optional[Alarm]:
        alarm = Alarm()
        trigger = data.trigger.strip()
        try:
            if is_absolute_trigger(trigger):
                alarm.add("trigger", _parse_absolute(trigger), parameters={"VALUE": "DATE-TIME"})
            else:
                alarm.add("trigger", vDuration.from_ical(trigger))
        except ValueError as e:
            logger.warning(f"Skipping alarm with invalid trigger for event {event.id}: {e}")
            return None

        alarm.add("action", data.action.upper())
        if data.summary:
            alarm.add("summary", data.summary)
        if data.description:
            alarm.add("description", data.description)
        if data.duration:
            try:
                alarm.add("duration", vDuration.from_ical(data.duration.strip()))
            except ValueError as e:
                logger.warning(f"Skipping invalid alarm DURATION for event {event.id}: {e}")
        if data.repeat is not None:
            alarm.add("repeat", data.repeat)
        return alarm


def generate_ics(
    calendar: CalendarData,
    prodid: str = DEFAULT_PRODID,
    uid_domain: str = DEFAULT_UID_DOMAIN,
) -> str:
    """Generate one ICS document for a calendar and its events."""
    return ICSGenerator(prodid=prodid, uid_domain=uid_domain).generate(calendar)

