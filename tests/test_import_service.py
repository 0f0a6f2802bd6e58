"""Tests for the storage-free import, merge, cleanup and export helpers."""

import json
from datetime import UTC, datetime, timedelta

import pytest

from icsengine.exceptions import ICSFileTooLargeError, ICSImportError
from icsengine.import_service import (
    DEFAULT_MAX_FILE_SIZE,
    next_sequence,
    parsed_to_event_data,
    plan_duplicate_cleanup,
    plan_merge,
    prepare_import,
    select_export_events,
    to_event_data,
    validate_file_size,
)
from icsengine.models import DuplicateCheckEvent, EventData, ParsedAlarm, ParsedAttendee, ParsedEvent

pytestmark = pytest.mark.unit

BASE = datetime(2025, 1, 1, 10, 0, tzinfo=UTC)
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def check_event(event_id: str, title: str = "Daily Standup", start: datetime = BASE) -> DuplicateCheckEvent:
    return DuplicateCheckEvent(
        id=event_id, title=title, start_date=start, end_date=start + timedelta(minutes=15)
    )


class TestValidateFileSize:
    """Tests for validate_file_size."""

    def test_default_limit_is_five_mebibytes(self):
        """Test the default upload limit."""
        assert DEFAULT_MAX_FILE_SIZE == 5 * 1024 * 1024

    def test_accepts_content_at_limit(self):
        """Test that content exactly at the limit passes and returns its size."""
        assert validate_file_size(b"x" * 1024, max_bytes=1024) == 1024

    def test_measures_text_as_utf8(self):
        """Test that str content is measured in UTF-8 bytes."""
        assert validate_file_size("é" * 10) == 20

    def test_rejects_oversize_content(self):
        """Test that oversize content raises with the sizes attached."""
        limit = 1024 * 1024

        with pytest.raises(ICSFileTooLargeError) as excinfo:
            validate_file_size("x" * (limit + 1), max_bytes=limit)

        error = excinfo.value
        assert error.size_bytes == limit + 1
        assert error.limit_bytes == limit
        assert str(error) == "File too large. Maximum allowed size: 1MB. Current size: 1.00MB"


class TestPrepareImport:
    """Tests for prepare_import."""

    def test_returns_parsed_events(self, simple_ics):
        """Test a plain import without duplicate checks."""
        plan = prepare_import(simple_ics)

        assert [event.title for event in plan.events] == ["Daily Standup", "Design Review"]
        assert plan.skipped_duplicates == 0
        assert plan.warnings == []

    def test_accepts_bytes_with_bom(self, simple_ics):
        """Test that UTF-8 bytes with a BOM are decoded."""
        plan = prepare_import(b"\xef\xbb\xbf" + simple_ics.encode("utf-8"))

        assert len(plan.events) == 2

    def test_fatal_parse_raises(self):
        """Test that zero events plus errors raises ICSImportError."""
        with pytest.raises(ICSImportError) as excinfo:
            prepare_import("garbage")

        assert str(excinfo.value).startswith("Unable to parse ICS file: Failed to parse ICS file: ")
        assert len(excinfo.value.warnings) == 1

    def test_partial_parse_keeps_warnings(self, make_ics):
        """Test that skipped events surface as warnings on a successful import."""
        ics = make_ics(
            "SUMMARY:Good\nDTSTART:20250101T100000Z\nDTEND:20250101T110000Z",
            "SUMMARY:Bad\nDTSTART:20250101T100000Z",
        )

        plan = prepare_import(ics)

        assert [event.title for event in plan.events] == ["Good"]
        assert plan.warnings == ['Event "Bad" is missing start or end date, skipping.']

    def test_oversize_upload_raises(self, simple_ics):
        """Test that the size check runs before parsing."""
        with pytest.raises(ICSFileTooLargeError):
            prepare_import(simple_ics, max_bytes=10)

    def test_skip_duplicates_against_existing(self, simple_ics):
        """Test that events already stored are dropped when requested."""
        existing = [check_event("stored-1")]

        plan = prepare_import(simple_ics, existing, skip_duplicates=True)

        assert [event.title for event in plan.events] == ["Design Review"]
        assert plan.skipped_duplicates == 1

    def test_duplicates_kept_unless_requested(self, simple_ics):
        """Test that existing events are ignored without skip_duplicates."""
        plan = prepare_import(simple_ics, [check_event("stored-1")])

        assert len(plan.events) == 2
        assert plan.skipped_duplicates == 0


class TestMergeAndCleanup:
    """Tests for plan_merge, plan_duplicate_cleanup and next_sequence."""

    def test_merge_keeps_everything_by_default(self):
        """Test that a plain merge concatenates calendars."""
        first = [check_event("a")]
        second = [check_event("b"), check_event("c", title="Other")]

        plan = plan_merge([first, second])

        assert [event.id for event in plan.events] == ["a", "b", "c"]
        assert plan.removed_duplicates == 0

    def test_merge_removes_duplicates(self):
        """Test that earlier calendars win when duplicates are removed."""
        first = [check_event("a")]
        second = [check_event("b"), check_event("c", title="Other")]

        plan = plan_merge([first, second], remove_duplicates=True)

        assert [event.id for event in plan.events] == ["a", "c"]
        assert plan.removed_duplicates == 1

    def test_merge_needs_two_calendars(self):
        """Test that merging a single calendar is rejected."""
        with pytest.raises(ValueError):
            plan_merge([[check_event("a")]])

    def test_cleanup_plan(self):
        """Test that cleanup lists later duplicates."""
        events = [check_event("a"), check_event("b"), check_event("c", start=BASE + timedelta(days=1))]

        plan = plan_duplicate_cleanup(events)

        assert plan.duplicate_ids == ["b"]
        assert plan.remaining_count == 2

    @pytest.mark.parametrize("current, expected", [(None, 0), (0, 1), (7, 8)])
    def test_next_sequence(self, current, expected):
        """Test that SEQUENCE starts at 0 and only grows."""
        assert next_sequence(current) == expected


class TestToEventData:
    """Tests for to_event_data."""

    def test_denormalizes_rows(self):
        """Test categories/resources rows and recurrence date rows."""
        record = {
            "id": "evt-1",
            "title": "Series",
            "start_date": BASE,
            "end_date": BASE + timedelta(hours=1),
            "class": "PUBLIC",
            "categories": [{"category": "Work"}, {"category": "Planning"}, {"category": "Work"}],
            "resources": ["Projector"],
            "recurrence_dates": [
                {"type": "RDATE", "date": datetime(2025, 1, 8, 10, 0, tzinfo=UTC)},
                {"type": "EXDATE", "date": "2025-01-15T10:00:00Z"},
            ],
            "calendar_id": "cal-1",
        }

        data = to_event_data(record)

        assert data.event_class == "PUBLIC"
        assert data.categories == "Work,Planning"
        assert data.resources == "Projector"
        assert json.loads(data.rdate) == ["2025-01-08T10:00:00.000Z"]
        assert json.loads(data.exdate) == ["2025-01-15T10:00:00.000Z"]

    def test_encoded_values_pass_through(self):
        """Test that already-encoded strings are kept."""
        record = {
            "id": "evt-2",
            "title": "Plain",
            "categories": "Work,Planning",
            "rdate": '["2025-01-08T10:00:00.000Z"]',
        }

        data = to_event_data(record)

        assert data.categories == "Work,Planning"
        assert data.rdate == '["2025-01-08T10:00:00.000Z"]'
        assert data.exdate is None
        assert data.start_date is None


class TestParsedToEventData:
    """Tests for parsed_to_event_data."""

    def _parsed(self, **overrides) -> ParsedEvent:
        fields = {
            "title": "Review",
            "start_date": BASE,
            "end_date": BASE + timedelta(hours=1),
        }
        fields.update(overrides)
        return ParsedEvent(**fields)

    def test_defaults(self):
        """Test SEQUENCE, DTSTAMP and bookkeeping defaults."""
        data = parsed_to_event_data(self._parsed(), "evt-1", now=NOW)

        assert data.id == "evt-1"
        assert data.sequence == 0
        assert data.dtstamp == NOW
        assert data.created_at == NOW
        assert data.updated_at == NOW

    def test_enumerations_are_canonicalized(self):
        """Test that known values are upper-cased and unknown ones dropped."""
        parsed = self._parsed(
            status="confirmed",
            event_class="private",
            transp="sometimes",
            attendees=[ParsedAttendee(email="a@example.com", role="chair", status="maybe")],
        )

        data = parsed_to_event_data(parsed, "evt-1", now=NOW)

        assert data.status == "CONFIRMED"
        assert data.event_class == "PRIVATE"
        assert data.transp is None
        assert data.attendees[0].role == "CHAIR"
        assert data.attendees[0].status is None

    def test_lists_and_dates_are_encoded(self):
        """Test categories joining and RDATE JSON encoding."""
        parsed = self._parsed(
            categories=["Work", "Planning"],
            rdate=[datetime(2025, 1, 8, 10, 0, tzinfo=UTC)],
        )

        data = parsed_to_event_data(parsed, "evt-1", now=NOW)

        assert data.categories == "Work,Planning"
        assert json.loads(data.rdate) == ["2025-01-08T10:00:00.000Z"]

    def test_invalid_alarm_action_raises(self):
        """Test that an alarm action that cannot be stored fails the event."""
        parsed = self._parsed(alarms=[ParsedAlarm(trigger="-PT5M", action="BEEP")])

        with pytest.raises(ICSImportError, match="Invalid alarm action: BEEP"):
            parsed_to_event_data(parsed, "evt-1", now=NOW)

    def test_alarm_action_is_canonicalized(self):
        """Test that alarm actions are stored upper-case."""
        parsed = self._parsed(alarms=[ParsedAlarm(trigger="-PT5M", action="display")])

        data = parsed_to_event_data(parsed, "evt-1", now=NOW)

        assert data.alarms[0].action == "DISPLAY"


class TestSelectExportEvents:
    """Tests for select_export_events."""

    @pytest.fixture
    def events(self) -> list[EventData]:
        return [
            EventData(id="past", title="Past", start_date=BASE, end_date=BASE, categories="Work"),
            EventData(
                id="future",
                title="Future",
                start_date=NOW + timedelta(days=1),
                end_date=NOW + timedelta(days=1),
                categories="Home, Travel",
            ),
            EventData(id="undated", title="Undated"),
        ]

    def test_no_filters(self, events):
        """Test that only undated events are dropped without filters."""
        assert [e.id for e in select_export_events(events)] == ["past", "future"]

    def test_date_range(self, events):
        """Test the inclusive date range."""
        selected = select_export_events(events, date_from=BASE, date_to=BASE)

        assert [e.id for e in selected] == ["past"]

    def test_future_only(self, events):
        """Test that future_only uses the current time as lower bound."""
        assert [e.id for e in select_export_events(events, future_only=True, now=NOW)] == ["future"]

    def test_categories(self, events):
        """Test that any shared category selects an event."""
        assert [e.id for e in select_export_events(events, categories=["Travel", "Other"])] == ["future"]
