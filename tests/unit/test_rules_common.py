"""
Unit Tests for the shared rule helpers
"""
from datetime import datetime, timedelta, timezone

import pytest

from ltc888.core.cds.rules_common import exceeds, format_value, parse_fhir_datetime, to_fhir_instant


class TestParseFhirDatetime:
    """Tests for FHIR date / dateTime parsing."""

    def test_full_timestamp_with_z(self):
        assert parse_fhir_datetime("2024-06-08T10:00:00Z") == datetime(2024, 6, 8, 10, tzinfo=timezone.utc)

    def test_offset(self):
        parsed = parse_fhir_datetime("2024-06-08T18:00:00+08:00")

        assert parsed.utcoffset() == timedelta(hours=8)
        assert parsed == datetime(2024, 6, 8, 10, tzinfo=timezone.utc)

    def test_negative_offset(self):
        parsed = parse_fhir_datetime("2024-06-08T05:30:00-04:30")
        assert parsed == datetime(2024, 6, 8, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value,expected", [
        ("2024", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ("2024-06", datetime(2024, 6, 1, tzinfo=timezone.utc)),
        ("2024-06-08", datetime(2024, 6, 8, tzinfo=timezone.utc)),
    ])
    def test_partial_dates_resolve_to_first_instant(self, value, expected):
        assert parse_fhir_datetime(value) == expected

    @pytest.mark.parametrize("value,micros", [
        ("2024-06-08T10:00:00.5Z", 500000),
        ("2024-06-08T10:00:00.12Z", 120000),
        ("2024-06-08T10:00:00.123Z", 123000),
        ("2024-06-08T10:00:00.123456789Z", 123456),
    ])
    def test_fraction_of_any_precision(self, value, micros):
        parsed = parse_fhir_datetime(value)

        assert parsed.microsecond == micros
        assert parsed.tzinfo == timezone.utc

    def test_no_offset_is_utc(self):
        assert parse_fhir_datetime("2024-06-08T10:00:00") == datetime(2024, 6, 8, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [
        None, "", "not-a-date", "2024-13", "2024-02-30", "24-06-08", "2024-06-08T25:00:00Z",
        "2024-06-08T10:00:00+25:00", 20240608,
    ])
    def test_invalid_values(self, value):
        assert parse_fhir_datetime(value) is None


class TestFormatting:

    def test_format_value(self):
        assert format_value(150.0) == "150"
        assert format_value(95.5) == "95.5"
        assert format_value(None) == "N/A"

    def test_exceeds(self):
        assert exceeds(141, 140)
        assert not exceeds(140, 140)
        assert not exceeds("150", 140)
        assert not exceeds(True, 0)

    def test_to_fhir_instant(self):
        value = datetime(2024, 6, 22, 18, 0, tzinfo=timezone(timedelta(hours=8)))
        assert to_fhir_instant(value) == "2024-06-22T10:00:00.000Z"
