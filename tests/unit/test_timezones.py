"""
Unit tests for time normalization.
"""

from datetime import datetime, timedelta, timezone

import pytest

from meditrack.exceptions import InvalidTimestamp, UnknownTimezone, ValidationError
from meditrack.services.timezones import format_instant, resolve_zone, to_canonical_instant


class TestToCanonicalInstant:
    """Test parsing offset timestamps into a doctor's timezone."""

    def test_same_instant_in_target_zone(self):
        """The instant is preserved; only the offset changes."""
        instant = to_canonical_instant("2024-06-01T15:00:00+01:00", "America/New_York")
        assert instant == datetime(2024, 6, 1, 14, 0, tzinfo=timezone.utc)
        assert instant.utcoffset() == timedelta(hours=-4)
        assert instant.hour == 10

    def test_zulu_suffix_accepted(self):
        instant = to_canonical_instant("2024-06-01T14:00:00Z", "Asia/Tokyo")
        assert instant.hour == 23
        assert instant.utcoffset() == timedelta(hours=9)

    def test_winter_offset(self):
        """America/New_York is UTC-5 outside daylight saving time."""
        instant = to_canonical_instant("2024-01-15T15:00:00+00:00", "America/New_York")
        assert instant.utcoffset() == timedelta(hours=-5)
        assert instant.hour == 10

    @pytest.mark.parametrize(
        "raw",
        ["2024-06-01T10:00:00", "not-a-date", "", "   ", "2024-06-01"],
    )
    def test_rejects_timestamps_without_offset(self, raw):
        with pytest.raises(InvalidTimestamp):
            to_canonical_instant(raw, "UTC")

    def test_unknown_timezone(self):
        with pytest.raises(UnknownTimezone) as exc_info:
            to_canonical_instant("2024-06-01T10:00:00Z", "Mars/Olympus_Mons")
        assert exc_info.value.zone == "Mars/Olympus_Mons"

    def test_errors_are_validation_errors(self):
        """Both failures belong to the validation category."""
        assert issubclass(InvalidTimestamp, ValidationError)
        assert issubclass(UnknownTimezone, ValidationError)

    def test_resolve_zone_is_cached(self):
        assert resolve_zone("Europe/London") is resolve_zone("Europe/London")


class TestFormatInstant:
    """Test rendering instants in a given timezone."""

    def test_format_in_doctor_timezone(self):
        instant = datetime(2024, 6, 1, 14, 0, tzinfo=timezone.utc)
        assert format_instant(instant, "America/New_York") == "2024-06-01T10:00:00-04:00"
        assert format_instant(instant, "Europe/London") == "2024-06-01T15:00:00+01:00"
        assert format_instant(instant, "Asia/Tokyo") == "2024-06-01T23:00:00+09:00"

    def test_offset_follows_daylight_saving(self):
        """The same zone renders different offsets in winter and summer."""
        winter = datetime(2024, 1, 15, 15, 0, tzinfo=timezone.utc)
        summer = datetime(2024, 7, 15, 14, 0, tzinfo=timezone.utc)
        assert format_instant(winter, "America/New_York") == "2024-01-15T10:00:00-05:00"
        assert format_instant(summer, "America/New_York") == "2024-07-15T10:00:00-04:00"

    def test_seconds_always_present(self):
        instant = datetime(2024, 6, 1, 14, 30, tzinfo=timezone.utc)
        assert format_instant(instant, "UTC") == "2024-06-01T14:30:00+00:00"

    def test_fractional_seconds_kept(self):
        instant = datetime(2024, 6, 1, 14, 0, 0, 500000, tzinfo=timezone.utc)
        assert format_instant(instant, "UTC") == "2024-06-01T14:00:00.500000+00:00"

    def test_round_trip_through_normalization(self):
        raw = "2024-06-01T10:00:00-04:00"
        instant = to_canonical_instant(raw, "America/New_York")
        assert format_instant(instant, "America/New_York") == raw

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValueError):
            format_instant(datetime(2024, 6, 1, 14, 0), "UTC")

    def test_unknown_timezone(self):
        with pytest.raises(UnknownTimezone):
            format_instant(datetime(2024, 6, 1, tzinfo=timezone.utc), "Nowhere/City")
