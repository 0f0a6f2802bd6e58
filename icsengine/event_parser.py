"""VEVENT parsing for ICS import.

``parse_ics_content`` never raises: anything that goes wrong ends up as a
human-readable entry in ``ParseResult.errors``. Callers decide whether zero
events plus errors is fatal.
"""

import logging
from typing import Any, Optional

from icalendar import Calendar

from . import field_extractors as fx
from .exceptions import ICSParseError
from .models import ParsedEvent, ParseResult

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Event"


class EventComponentParser:
    """Parser for iCalendar VEVENT components into ParsedEvent objects."""

    def parse_event_component(self, component: Any, errors: list[str]) -> Optional[ParsedEvent]:
        """Parse a single VEVENT component.

        Args:
            component: iCalendar VEVENT component
            errors: Warning sink shared across the whole document

        Returns:
            ParsedEvent, or None when the event has no resolvable start/end
        """
        title = fx.extract_title(component) or DEFAULT_TITLE

        dates = fx.extract_event_dates(component, title, errors)
        if dates is None:
            message = f'Event "{title}" is missing start or end date, skipping.'
            logger.warning(message)
            errors.append(message)
            return None
        start_date, end_date = dates

        for message in fx.collect_property_errors(component, title):
            logger.warning(message)
            errors.append(message)

        metadata = fx.extract_basic_metadata(component, title, errors)
        recurrence = fx.extract_recurrence_data(component, title, errors)
        geo_latitude, geo_longitude = fx.extract_geolocation(component, title, errors)
        organizer_name, organizer_email = fx.extract_organizer(component, title, errors)
        attendees = fx.extract_attendees(component, title, errors)
        alarms = fx.extract_alarms(component, title, errors)

        return ParsedEvent(
            title=title,
            start_date=start_date,
            end_date=end_date,
            geo_latitude=geo_latitude,
            geo_longitude=geo_longitude,
            organizer_name=organizer_name,
            organizer_email=organizer_email,
            attendees=attendees or None,
            alarms=alarms or None,
            **metadata,
            **recurrence,
            **fx.extract_timestamps(component),
            **fx.extract_simple_properties(component),
        )


class ICSContentParser:
    """Turns one ICS document into a ParseResult."""

    def __init__(self, event_parser: Optional[EventComponentParser] = None):
        self.event_parser = event_parser or EventComponentParser()

    def _load_calendar(self, ics_content: str) -> Any:
        calendar = Calendar.from_ical(ics_content)
        if calendar.name != "VCALENDAR":
            raise ICSParseError(f"expected a VCALENDAR root component, found {calendar.name}")
        return calendar

    def _load_event_block(
        self, block: list[str], timezones: list[list[str]], errors: list[str]
    ) -> Any:
        """Load one VEVENT block, dropping the VALARMs icalendar refuses."""
        opening, closing = block[0], block[-1]
        body, alarms = _find_blocks(block[1:-1], "VALARM")
        event = _load_event(*timezones, [opening, *body, closing])
        if not alarms:
            return event

        title = fx.extract_title(event) or DEFAULT_TITLE
        kept: list[str] = []
        for alarm in alarms:
            try:
                _load_event(*timezones, [opening, *body, *alarm, closing])
            except Exception as e:
                message = f'Failed to parse alarm in event "{title}": {e}'
                logger.warning(message)
                errors.append(message)
                continue
            kept.extend(alarm)
        return _load_event(*timezones, [opening, *body, *kept, closing])

    def _recover_events(self, ics_content: str, errors: list[str]) -> Optional[tuple[list[Any], int]]:
        """Load VEVENT blocks one at a time after the document as a whole was refused.

        Returns:
            (loaded VEVENT components, number of VEVENT blocks found), or None
            when the content is not a VCALENDAR with events in it
        """
        lines = ics_content.splitlines()
        first_line = next((line.strip().upper() for line in lines if line.strip()), "")
        if first_line != "BEGIN:VCALENDAR":
            return None
        _, event_blocks = _find_blocks(lines, "VEVENT")
        if not event_blocks:
            return None

        _, timezone_blocks = _find_blocks(lines, "VTIMEZONE")
        timezones = []
        for block in timezone_blocks:
            try:
                Calendar.from_ical(_wrap_calendar(block))
            except Exception as e:
                logger.warning(f"Ignoring unreadable VTIMEZONE: {e}")
                continue
            timezones.append(block)

        components = []
        for block in event_blocks:
            try:
                components.append(self._load_event_block(block, timezones, errors))
            except Exception as e:
                message = f"Failed to parse event: {e}"
                logger.warning(message)
                errors.append(message)
        return components, len(event_blocks)

    def parse(self, ics_content: str) -> ParseResult:
        """Parse ICS content into events and warnings.

        When icalendar refuses the document as a whole (typically because of
        one bad VALARM), each VEVENT is loaded on its own so that the other
        events survive.

        Args:
            ics_content: Raw ICS text (UTF-8 decoded)

        Returns:
            ParseResult with every event that could be resolved
        """
        events: list[ParsedEvent] = []
        errors: list[str] = []

        try:
            vevents = self._load_calendar(ics_content).walk("VEVENT")
            found = len(vevents)
        except ICSParseError as e:
            return self._fatal(e)
        except Exception as e:
            recovered = self._recover_events(ics_content, errors)
            if recovered is None:
                return self._fatal(e)
            logger.warning(f"Loading events one by one after: {e}")
            vevents, found = recovered

        for component in vevents:
            try:
                event = self.event_parser.parse_event_component(component, errors)
            except Exception as e:
                logger.exception("Failed to parse event component")
                errors.append(f"Failed to parse event: {e}")
                continue
            if event:
                events.append(event)

        if not found:
            message = "No events found in the ICS file."
            logger.warning(message)
            errors.append(message)

        logger.debug(f"Parsed {len(events)} of {found} events ({len(errors)} warnings)")
        return ParseResult(events=events, errors=errors)

    @staticmethod
    def _fatal(error: Exception) -> ParseResult:
        message = f"Failed to parse ICS file: {error}"
        logger.warning(message)
        return ParseResult(errors=[message])


def _find_blocks(lines: list[str], name: str) -> tuple[list[str], list[list[str]]]:
    """Split content lines into complete ``BEGIN:<name>``/``END:<name>`` blocks and the rest.

    Folded continuation lines start with whitespace, so they never open or
    close a block. An unterminated block stays with the rest.
    """
    begin, end = f"BEGIN:{name}", f"END:{name}"
    rest: list[str] = []
    blocks: list[list[str]] = []
    current: Optional[list[str]] = None
    for line in lines:
        marker = line.rstrip().upper()
        if current is None:
            if marker == begin:
                current = [line]
            else:
                rest.append(line)
            continue
        current.append(line)
        if marker == end:
            blocks.append(current)
            current = None
    if current:
        rest.extend(current)
    return rest, blocks


def _wrap_calendar(*blocks: list[str]) -> str:
    lines = ["BEGIN:VCALENDAR", *(line for block in blocks for line in block), "END:VCALENDAR"]
    return "\r\n".join(lines) + "\r\n"


def _load_event(*blocks: list[str]) -> Any:
    return Calendar.from_ical(_wrap_calendar(*blocks)).walk("VEVENT")[0]


def parse_ics_content(ics_content: str) -> ParseResult:
    """Parse ICS text into structured events plus human-readable warnings."""
    return ICSContentParser().parse(ics_content)
