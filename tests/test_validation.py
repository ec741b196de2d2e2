#!/usr/bin/env python3
"""Tests for chronological reading validation."""

from datetime import date, datetime

import pytest
from mileage import (
    Car,
    Reading,
    Rejection,
    get_reading_after_date,
    get_reading_before_date,
    validate_reading_in_sequence,
)


@pytest.fixture
def readings():
    return [
        Reading("1", "car-1", "2024-01-01", 10000),
        Reading("2", "car-1", "2024-02-01", 11000),
        Reading("3", "car-1", "2024-03-01", 12000),
    ]


class TestNeighbourLookup:
    """Tests for get_reading_before_date / get_reading_after_date."""

    def test_before_returns_nearest_earlier(self, readings):
        assert get_reading_before_date(readings, "car-1", "2024-02-15") is readings[1]

    def test_before_none_when_nothing_earlier(self, readings):
        assert get_reading_before_date(readings, "car-1", "2023-12-01") is None

    def test_before_filters_by_car(self, readings):
        assert get_reading_before_date(readings, "car-2", "2024-02-15") is None

    def test_after_returns_nearest_later(self, readings):
        assert get_reading_after_date(readings, "car-1", "2024-01-15") is readings[1]

    def test_after_none_when_nothing_later(self, readings):
        assert get_reading_after_date(readings, "car-1", "2024-04-01") is None

    def test_exact_date_is_neither_before_nor_after(self, readings):
        assert get_reading_before_date(readings, "car-1", "2024-02-01") is readings[0]
        assert get_reading_after_date(readings, "car-1", "2024-02-01") is readings[2]

    def test_unsorted_input(self, readings):
        shuffled = [readings[2], readings[0], readings[1]]
        assert get_reading_before_date(shuffled, "car-1", "2024-02-15") is readings[1]
        assert get_reading_after_date(shuffled, "car-1", "2024-01-15") is readings[1]


class TestValidateReadingInSequence:
    """Tests for validate_reading_in_sequence."""

    def test_valid_between_neighbours(self, readings):
        result = validate_reading_in_sequence(readings, "car-1", "2024-02-15", 11500)
        assert result.is_valid
        assert result.error is None
        assert result.min_value == 11000
        assert result.max_value == 12000

    def test_below_previous_rejected(self, readings):
        result = validate_reading_in_sequence(readings, "car-1", "2024-02-15", 10500)
        assert not result.is_valid
        assert result.kind == Rejection.BELOW_PREVIOUS
        assert "must be at least 11,000 mi" in result.error
        assert "2024-02-01" in result.error
        assert result.min_value == 11000
        assert result.max_value is None

    def test_above_next_rejected(self, readings):
        result = validate_reading_in_sequence(readings, "car-1", "2024-01-15", 11500)
        assert not result.is_valid
        assert result.kind == Rejection.ABOVE_NEXT
        assert "cannot exceed 11,000 mi" in result.error
        assert "2024-02-01" in result.error
        assert result.max_value == 11000

    def test_first_reading_for_car_always_accepted(self, readings):
        result = validate_reading_in_sequence(readings, "car-2", "2024-01-01", 5000)
        assert result.is_valid
        assert result.min_value is None
        assert result.max_value is None

    def test_empty_history_accepts_zero(self):
        assert validate_reading_in_sequence([], "car-1", "2024-01-01", 0).is_valid

    def test_equal_to_previous_allowed(self, readings):
        assert validate_reading_in_sequence(readings, "car-1", "2024-02-15", 11000).is_valid

    def test_equal_to_next_allowed(self, readings):
        assert validate_reading_in_sequence(readings, "car-1", "2024-01-15", 11000).is_valid

    def test_duplicate_date_rejected(self, readings):
        result = validate_reading_in_sequence(readings, "car-1", "2024-02-01", 11000)
        assert not result.is_valid
        assert result.kind == Rejection.DUPLICATE_DATE
        assert "already exists" in result.error

    def test_duplicate_reported_before_range(self, readings):
        """An out-of-range value on an occupied date is a duplicate, not a range error."""
        result = validate_reading_in_sequence(readings, "car-1", "2024-03-01", 1)
        assert result.kind == Rejection.DUPLICATE_DATE
        assert result.min_value is None

    def test_exclude_id_allows_editing_in_place(self, readings):
        result = validate_reading_in_sequence(
            readings, "car-1", "2024-02-01", 11500, exclude_id="2"
        )
        assert result.is_valid
        assert result.min_value == 10000
        assert result.max_value == 12000

    def test_exclude_id_still_checks_neighbours(self, readings):
        result = validate_reading_in_sequence(
            readings, "car-1", "2024-02-01", 12500, exclude_id="2"
        )
        assert result.kind == Rejection.ABOVE_NEXT

    def test_other_cars_ignored(self, readings):
        other = readings + [Reading("9", "car-2", "2024-02-10", 99999)]
        assert validate_reading_in_sequence(other, "car-1", "2024-02-15", 11500).is_valid

    def test_accepts_date_objects(self, readings):
        assert validate_reading_in_sequence(
            readings, "car-1", date(2024, 2, 15), 11500
        ).is_valid

    def test_inconsistent_neighbours_do_not_crash(self):
        """Corrupt history: both bounds are evaluated independently."""
        corrupt = [
            Reading("1", "car-1", "2024-01-01", 20000),
            Reading("2", "car-1", "2024-03-01", 10000),
        ]
        below = validate_reading_in_sequence(corrupt, "car-1", "2024-02-01", 15000)
        assert below.kind == Rejection.BELOW_PREVIOUS
        above = validate_reading_in_sequence(corrupt, "car-1", "2024-02-01", 25000)
        assert above.kind == Rejection.ABOVE_NEXT

    def test_idempotent(self, readings):
        first = validate_reading_in_sequence(readings, "car-1", "2024-02-15", 10500)
        second = validate_reading_in_sequence(readings, "car-1", "2024-02-15", 10500)
        assert first == second

    def test_does_not_mutate_input(self, readings):
        before = [(r.id, r.date, r.reading) for r in readings]
        validate_reading_in_sequence(readings, "car-1", "2024-02-15", 11500, exclude_id="1")
        assert [(r.id, r.date, r.reading) for r in readings] == before

    def test_custom_unit_in_message(self, readings):
        result = validate_reading_in_sequence(
            readings, "car-1", "2024-02-15", 1, unit="km"
        )
        assert "11,000 km" in result.error


class TestInvalidInput:
    """Malformed input is rejected, not raised."""

    def test_malformed_date(self, readings):
        result = validate_reading_in_sequence(readings, "car-1", "2024-13-45", 100)
        assert not result.is_valid
        assert result.kind == Rejection.INVALID_DATE

    def test_non_date_string(self, readings):
        result = validate_reading_in_sequence(readings, "car-1", "yesterday", 100)
        assert result.kind == Rejection.INVALID_DATE

    def test_iso_week_date(self, readings):
        result = validate_reading_in_sequence(readings, "car-1", "2024-W05-1", 100)
        assert result.kind == Rejection.INVALID_DATE

    def test_datetime_compared_by_day(self, readings):
        result = validate_reading_in_sequence(
            readings, "car-1", datetime(2024, 2, 15, 10, 30), 11500
        )
        assert result.is_valid
        assert result.min_value == 11000

    def test_datetime_on_occupied_day(self, readings):
        result = validate_reading_in_sequence(
            readings, "car-1", datetime(2024, 2, 1, 8, 0), 11000
        )
        assert result.kind == Rejection.DUPLICATE_DATE

    def test_negative_value(self, readings):
        result = validate_reading_in_sequence(readings, "car-1", "2025-01-01", -1)
        assert result.kind == Rejection.INVALID_VALUE

    def test_non_integer_value(self, readings):
        result = validate_reading_in_sequence(readings, "car-1", "2025-01-01", 12.5)
        assert result.kind == Rejection.INVALID_VALUE


class TestBaselineFloor:
    """First reading of a car may not fall below its starting odometer."""

    @pytest.fixture
    def car(self):
        return Car(
            "car-b", "Daily", initial_odometer=45000, tracking_start_date="2026-01-01"
        )

    def test_below_baseline_rejected(self, car):
        result = validate_reading_in_sequence([], "car-b", "2026-01-31", 44000, car=car)
        assert not result.is_valid
        assert result.kind == Rejection.BELOW_BASELINE
        assert result.min_value == 45000

    def test_at_or_above_baseline_accepted(self, car):
        result = validate_reading_in_sequence([], "car-b", "2026-01-31", 45800, car=car)
        assert result.is_valid
        assert result.min_value == 45000

    def test_baseline_ignored_when_predecessor_exists(self, car):
        history = [Reading("1", "car-b", "2026-01-31", 45800)]
        result = validate_reading_in_sequence(
            history, "car-b", "2026-02-28", 46000, car=car
        )
        assert result.is_valid
        assert result.min_value == 45800

    def test_car_without_baseline(self):
        car = Car("car-c", "Spare")
        assert validate_reading_in_sequence([], "car-c", "2026-01-31", 1, car=car).is_valid


class TestSequenceCheckContract:
    """Tests for SequenceCheck.to_dict."""

    def test_accept_payload_includes_bounds(self, readings):
        result = validate_reading_in_sequence(readings, "car-1", "2024-02-15", 11500)
        assert result.to_dict() == {"isValid": True, "minValue": 11000, "maxValue": 12000}

    def test_accept_payload_without_bounds(self):
        result = validate_reading_in_sequence([], "car-1", "2024-02-15", 11500)
        assert result.to_dict() == {"isValid": True}

    def test_reject_payload(self, readings):
        payload = validate_reading_in_sequence(
            readings, "car-1", "2024-02-15", 10500
        ).to_dict()
        assert payload["isValid"] is False
        assert payload["minValue"] == 11000
        assert "maxValue" not in payload
        assert payload["error"]


class TestScenarios:
    """End-to-end scenarios for backfilling and duplicates."""

    @pytest.fixture
    def car_a(self):
        return [
            Reading("a1", "car-a", "2025-01-31", 10000),
            Reading("a2", "car-a", "2026-01-31", 78000),
        ]

    def test_backfill_between_readings(self, car_a):
        assert validate_reading_in_sequence(car_a, "car-a", "2025-06-30", 40000).is_valid

    def test_backfill_below_predecessor_names_predecessor(self, car_a):
        result = validate_reading_in_sequence(car_a, "car-a", "2025-06-30", 9000)
        assert not result.is_valid
        assert "10,000" in result.error
        assert "2025-01-31" in result.error
        assert "78,000" not in result.error

    def test_duplicate_date(self, car_a):
        result = validate_reading_in_sequence(car_a, "car-a", "2026-01-31", 78000)
        assert result.kind == Rejection.DUPLICATE_DATE

    def test_value_between_any_two_neighbours(self, car_a):
        """Accepted iff predecessor <= value <= successor."""
        for value, ok in [(9999, False), (10000, True), (50000, True), (78000, True), (78001, False)]:
            assert validate_reading_in_sequence(car_a, "car-a", "2025-06-30", value).is_valid is ok
