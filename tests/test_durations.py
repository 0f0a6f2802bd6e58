"""Unit tests for duration, alarm trigger and ICS date string helpers."""

from datetime import UTC, datetime

import pytest

from icsengine.durations import (
    AlarmTrigger,
    ParsedDuration,
    duration_to_minutes,
    format_alarm_trigger,
    format_duration,
    format_ics_date,
    format_ics_date_only,
    format_negative_duration,
    is_absolute_trigger,
    is_valid_duration,
    parse_alarm_trigger,
    parse_duration,
    parse_ics_date,
)

pytestmark = pytest.mark.unit


class TestParseDuration:
    """Tests for parse_duration and friends."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("PT15M", ParsedDuration(15, "minutes")),
            ("PT1H", ParsedDuration(1, "hours")),
            ("P2D", ParsedDuration(2, "days")),
            ("P1DT2H", ParsedDuration(1, "days")),
            ("PT1H30M", ParsedDuration(1, "hours")),
            ("PT45S", ParsedDuration(45, "seconds")),
            ("-PT15M", ParsedDuration(15, "minutes")),
        ],
    )
    def test_largest_unit_wins(self, value, expected):
        """Test that the largest non-zero unit is reported."""
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "PT0M", "garbage", "P"])
    def test_unusable_values(self, value):
        """Test that empty, zero and invalid durations give None."""
        assert parse_duration(value) is None

    def test_is_valid_duration(self):
        """Test validity checks."""
        assert is_valid_duration("PT5M")
        assert not is_valid_duration("5 minutes")

    @pytest.mark.parametrize(
        "value, expected",
        [("P1D", 1440), ("PT2H", 120), ("PT15M", 15), ("PT90S", 2), ("PT30S", 1), ("bad", None)],
    )
    def test_duration_to_minutes(self, value, expected):
        """Test conversion to whole minutes, rounding seconds up."""
        assert duration_to_minutes(value) == expected


class TestFormatDuration:
    """Tests for format_duration and format_negative_duration."""

    @pytest.mark.parametrize(
        "value, unit, expected",
        [
            (15, "minutes", "PT15M"),
            ("2", "hours", "PT2H"),
            (1, "days", "P1D"),
            (30, "seconds", "PT30S"),
            (0, "minutes", ""),
            (-5, "minutes", ""),
            ("soon", "minutes", ""),
        ],
    )
    def test_format_duration(self, value, unit, expected):
        """Test formatting of positive values and rejection of others."""
        assert format_duration(value, unit) == expected

    def test_format_negative_duration(self):
        """Test that negative durations get a leading minus."""
        assert format_negative_duration(15, "minutes") == "-PT15M"
        assert format_negative_duration(0, "minutes") == ""


class TestAlarmTriggers:
    """Tests for alarm trigger parsing and formatting."""

    @pytest.mark.parametrize(
        "trigger, expected",
        [
            ("-PT15M", AlarmTrigger("before", 15, "minutes")),
            ("-PT1H", AlarmTrigger("before", 1, "hours")),
            ("-P1D", AlarmTrigger("before", 1, "days")),
            ("PT10M", AlarmTrigger("after", 10, "minutes")),
            ("20250101T090000Z", AlarmTrigger("at", 0, "minutes")),
            ("20250101T090000", AlarmTrigger("at", 0, "minutes")),
        ],
    )
    def test_parse_alarm_trigger(self, trigger, expected):
        """Test relative and absolute triggers."""
        assert parse_alarm_trigger(trigger) == expected

    @pytest.mark.parametrize("trigger", [None, "", "-PT30S", "garbage"])
    def test_unrepresentable_triggers(self, trigger):
        """Test that empty, seconds-only and invalid triggers give None."""
        assert parse_alarm_trigger(trigger) is None

    @pytest.mark.parametrize(
        "when, value, unit, expected",
        [
            ("before", 15, "minutes", "-PT15M"),
            ("before", 1, "days", "-P1D"),
            ("after", 2, "hours", "PT2H"),
            ("at", 0, "minutes", ""),
        ],
    )
    def test_format_alarm_trigger(self, when, value, unit, expected):
        """Test trigger formatting."""
        assert format_alarm_trigger(when, value, unit) == expected

    def test_is_absolute_trigger(self):
        """Test absolute trigger detection."""
        assert is_absolute_trigger("20250101T090000Z")
        assert not is_absolute_trigger("-PT15M")


class TestIcsDates:
    """Tests for ICS date string helpers."""

    def test_parse_datetime(self):
        """Test the UTC date-time form."""
        assert parse_ics_date("20250101T100000Z") == datetime(2025, 1, 1, 10, 0, tzinfo=UTC)

    def test_parse_date(self):
        """Test the date-only form."""
        assert parse_ics_date("20250101") == datetime(2025, 1, 1, tzinfo=UTC)

    @pytest.mark.parametrize("value", [None, "", "2025-01-01", "20251301", "20250101T100000"])
    def test_parse_rejects_other_forms(self, value):
        """Test that other formats and impossible dates give None."""
        assert parse_ics_date(value) is None

    def test_format(self):
        """Test formatting to UTC date-time and date-only strings."""
        dt = datetime(2025, 1, 1, 10, 0, tzinfo=UTC)

        assert format_ics_date(dt) == "20250101T100000Z"
        assert format_ics_date_only(dt) == "20250101"
