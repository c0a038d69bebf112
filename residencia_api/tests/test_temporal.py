# SPDX-License-Identifier: Apache-2.0

"""
Tests for timezone-aware wall-clock comparison and arithmetic.
"""

import pytest
from datetime import datetime, timezone

from residencia_api.domain.temporal import (
    Duration,
    add_duration,
    compare,
    compare_date_only,
    create_date,
    create_date_time,
    interval_to_duration,
    parse_wall_clock,
    timezoned_now,
    to_instant
)
from residencia_api.models.entities import TimezonedValue
from residencia_api.models.enums import ComparisonResult


def tv(value, zone="UTC"):
    return TimezonedValue(value=value, zone=zone)


class TestParseWallClock:
    """Test wall-clock string parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("2024-01-01", datetime(2024, 1, 1)),
        ("2024-01-01 08:30", datetime(2024, 1, 1, 8, 30)),
        ("2024-01-01 08:30:15", datetime(2024, 1, 1, 8, 30, 15)),
        ("2024-01-01T08:30:15.250", datetime(2024, 1, 1, 8, 30, 15, 250000)),
    ])
    def test_accepted_formats(self, value, expected):
        """Test every accepted format."""
        assert parse_wall_clock(value) == expected

    @pytest.mark.parametrize("value", ["", None, "2024-13-01", "2024-02-30", "01/02/2024", "2024-01-01 25:00"])
    def test_malformed_values(self, value):
        """Test malformed values parse to None."""
        assert parse_wall_clock(value) is None


class TestCompare:
    """Test instant comparison."""

    def test_same_zone_ordering(self):
        assert compare(tv("2024-01-02"), tv("2024-01-01")) == ComparisonResult.GREATER
        assert compare(tv("2024-01-01"), tv("2024-01-02")) == ComparisonResult.LESS
        assert compare(tv("2024-01-01 00:00"), tv("2024-01-01")) == ComparisonResult.EQUAL

    def test_cross_zone_same_instant(self):
        """Test the same instant written in two zones is equal."""
        a = tv("2024-01-01 12:00", "UTC")
        b = tv("2024-01-01 06:00", "America/Mexico_City")
        assert compare(a, b) == ComparisonResult.EQUAL

    def test_invalid_propagates(self):
        """Test missing or malformed values give INVALID, never an ordering."""
        assert compare(None, tv("2024-01-01")) == ComparisonResult.INVALID
        assert compare(tv("2024-01-01"), tv("not a date")) == ComparisonResult.INVALID
        assert compare(tv("2024-01-01", "Mars/Olympus"), tv("2024-01-01")) == ComparisonResult.INVALID

    def test_nonexistent_local_time_is_invalid(self):
        """Test a wall-clock time skipped by DST is invalid."""
        skipped = tv("2024-03-10 02:30", "America/New_York")
        assert to_instant(skipped) is None
        assert compare(skipped, tv("2024-03-10", "America/New_York")) == ComparisonResult.INVALID

    def test_ambiguous_local_time_resolves_to_earlier_instant(self):
        """Test a repeated wall-clock time resolves to its first occurrence."""
        instant = to_instant(tv("2024-11-03 01:30", "America/New_York"))
        assert instant == datetime(2024, 11, 3, 5, 30, tzinfo=timezone.utc)


class TestCompareDateOnly:
    """Test calendar-day comparison."""

    def test_late_evening_equals_date(self):
        """Test a time late in the day equals the date-only value."""
        zone = "America/Mexico_City"
        assert compare_date_only(tv("2024-01-01 23:00", zone), tv("2024-01-01", zone)) == ComparisonResult.EQUAL

    def test_reference_zone_is_first_argument(self):
        """Test days are taken in the first value's zone."""
        # 2024-01-02 00:30 UTC is still 2024-01-01 in Mexico City
        a = tv("2024-01-01 17:00", "America/Mexico_City")
        b = tv("2024-01-02 00:30", "UTC")
        assert compare(a, b) == ComparisonResult.LESS
        assert compare_date_only(a, b) == ComparisonResult.EQUAL
        assert compare_date_only(b, a) == ComparisonResult.GREATER

    def test_different_days(self):
        assert compare_date_only(tv("2024-01-02 00:01"), tv("2024-01-01 23:59")) == ComparisonResult.GREATER

    def test_invalid(self):
        assert compare_date_only(tv("garbage"), tv("2024-01-01")) == ComparisonResult.INVALID


class TestAddDuration:
    """Test calendar duration addition."""

    def test_add_one_month_clamps_to_month_end(self):
        """Test Jan 31 plus one month lands on the last day of February."""
        result = add_duration(tv("2024-01-31"), Duration(months=1))
        assert result.value == "2024-02-29 00:00:00.000"
        assert result.zone == "UTC"

    def test_add_one_year(self):
        result = add_duration(tv("2024-06-15 12:00:00"), Duration(years=1))
        assert result.value == "2025-06-15 12:00:00.000"

    def test_add_day_across_dst_keeps_wall_clock(self):
        """Test adding a day keeps the local time across a DST change."""
        result = add_duration(tv("2024-03-09 10:00", "America/New_York"), Duration(days=1))
        assert result.value == "2024-03-10 10:00:00.000"

    def test_result_in_dst_gap_moves_forward(self):
        """Test a result inside a DST gap is shifted past the gap."""
        result = add_duration(tv("2024-03-09 02:30", "America/New_York"), Duration(days=1))
        assert result.value == "2024-03-10 03:30:00.000"
        assert to_instant(result) is not None

    def test_zero_duration_returns_base(self):
        base = tv("2024-06-15")
        assert add_duration(base, Duration()) == base

    def test_invalid_base(self):
        assert add_duration(tv("nope"), Duration(days=1)) is None
        assert add_duration(None, Duration(days=1)) is None

    def test_result_past_supported_range(self):
        assert add_duration(tv("9999-12-31"), Duration(days=1)) is None
        assert add_duration(tv("9999-06-01", "America/Mexico_City"), Duration(years=1)) is None

    @pytest.mark.parametrize("duration", [
        Duration(seconds=1),
        Duration(days=1),
        Duration(weeks=2),
        Duration(months=1),
        Duration(years=1),
        Duration(months=1, days=3, hours=4)
    ])
    @pytest.mark.parametrize("base", [
        tv("2024-01-31"),
        tv("2024-11-03 00:30", "America/New_York"),
        tv("2024-03-10 01:59:59", "America/New_York"),
        tv("2024-12-31 23:59:59.999", "Asia/Tokyo")
    ])
    def test_positive_duration_moves_forward(self, base, duration):
        """Test adding a non-zero duration yields a strictly later instant."""
        assert compare(add_duration(base, duration), base) == ComparisonResult.GREATER

    def test_negative_component_rejected(self):
        with pytest.raises(ValueError):
            Duration(days=-1)


class TestIntervalToDuration:
    """Test measuring the length of an interval."""

    def test_months_and_days(self):
        duration = interval_to_duration(tv("2024-01-15"), tv("2024-03-20"))
        assert duration == Duration(months=2, days=5)

    def test_round_trip_to_end(self):
        """Test adding the measured duration to the start reaches the end."""
        start = tv("2024-02-01 08:00")
        end = tv("2025-01-31 17:30")
        duration = interval_to_duration(start, end)
        assert compare(add_duration(start, duration), end) == ComparisonResult.EQUAL

    def test_end_before_start(self):
        assert interval_to_duration(tv("2024-03-01"), tv("2024-02-01")) is None

    def test_invalid(self):
        assert interval_to_duration(tv("2024-03-01"), None) is None


class TestConstructors:
    """Test helpers building timezoned values."""

    def test_timezoned_now(self):
        moment = datetime(2024, 6, 15, 18, 0, tzinfo=timezone.utc)
        now = timezoned_now("America/Mexico_City", moment)
        assert now.value == "2024-06-15 12:00:00"
        assert now.zone == "America/Mexico_City"

    def test_timezoned_now_unknown_zone(self):
        with pytest.raises(ValueError):
            timezoned_now("Nowhere/Special")

    def test_create_date(self):
        assert create_date("2024-02-29", "UTC") == tv("2024-02-29")
        assert create_date("2023-02-29", "UTC") is None
        assert create_date("2024-02-01 10:00", "UTC") is None

    def test_create_date_time(self):
        assert create_date_time("2024-02-01", "10:15", "UTC").value == "2024-02-01 10:15:00.000"
        assert create_date_time("2024-03-10", "02:30", "America/New_York") is None
