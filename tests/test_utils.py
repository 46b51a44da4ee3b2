"""Unit tests for utility functions."""

from datetime import datetime, timezone

from buildsync.utils import format_size, format_timestamp, parse_iso_timestamp


class TestParseIsoTimestamp:
    """Tests for parse_iso_timestamp function."""

    def test_utc_suffix(self):
        result = parse_iso_timestamp("2015-02-03T10:30:00Z")
        assert result == datetime(2015, 2, 3, 10, 30, tzinfo=timezone.utc)

    def test_microseconds(self):
        result = parse_iso_timestamp("2015-02-03T10:30:00.123456+00:00")
        assert result.microsecond == 123456

    def test_nanoseconds_are_dropped(self):
        result = parse_iso_timestamp("2015-02-03T10:30:00.123456789-07:00")
        assert result is not None
        assert result.second == 0
        assert result.utcoffset().total_seconds() == -7 * 3600

    def test_empty_and_invalid(self):
        assert parse_iso_timestamp(None) is None
        assert parse_iso_timestamp("") is None
        assert parse_iso_timestamp("yesterday") is None


class TestFormatSize:
    """Tests for format_size function."""

    def test_bytes(self):
        assert format_size(0) == "0 B"
        assert format_size(1023) == "1023 B"

    def test_larger_units(self):
        assert format_size(1536) == "1.5 KB"
        assert format_size(5 * 1024 * 1024) == "5.0 MB"
        assert format_size(3 * 1024**3) == "3.0 GB"


class TestFormatTimestamp:
    """Tests for format_timestamp function."""

    def test_unknown(self):
        assert format_timestamp(None) == "-"

    def test_known(self):
        value = datetime(2015, 2, 3, 10, 30, 5)
        assert format_timestamp(value) == "2015-02-03 10:30:05"
