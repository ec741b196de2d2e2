#!/usr/bin/env python3
"""
Tests for Garage class.

Covers the dashboard statistics built on top of the aggregation functions:
per-car stats, totals across active cars, and gap-filled chart data.
"""

from datetime import date

import pytest
from mileage import AppSettings, Car, CarNotFoundError, Garage, Reading, Rejection


@pytest.fixture
def garage():
    cars = [
        Car("car-a", "Commuter"),
        Car("car-b", "Weekend", initial_odometer=45000, tracking_start_date="2026-01-01"),
        Car("car-old", "Retired", is_active=False),
    ]
    readings = [
        Reading("a1", "car-a", "2025-12-31", 10000),
        Reading("a2", "car-a", "2026-01-31", 11000),
        Reading("a3", "car-a", "2026-03-31", 13000),
        Reading("b1", "car-b", "2026-01-31", 45800),
        Reading("o1", "car-old", "2026-01-31", 90000),
        Reading("o2", "car-old", "2026-03-31", 95000),
    ]
    return Garage(cars, readings, AppSettings(), as_of_date="2026-03-15")


class TestGarageLookup:
    """Tests for Garage lookup helpers."""

    def test_active_cars_excludes_retired(self, garage):
        assert [c.id for c in garage.active_cars] == ["car-a", "car-b"]

    def test_get_car_includes_retired(self, garage):
        assert garage.get_car("car-old").name == "Retired"
        assert garage.get_car("missing") is None

    def test_get_reading(self, garage):
        assert garage.get_reading("a2").reading == 11000
        assert garage.get_reading("zzz") is None

    def test_readings_for_sorted(self, garage):
        assert [r.id for r in garage.readings_for("car-a")] == ["a1", "a2", "a3"]
        assert [r.id for r in garage.readings_for("car-a", reverse=True)] == ["a3", "a2", "a1"]

    def test_as_of_date(self, garage):
        assert garage.as_of_date == date(2026, 3, 15)
        assert Garage().as_of_date == date.today()


class TestCarStats:
    """Tests for Garage.car_stats."""

    def test_commuter(self, garage):
        stats = garage.car_stats("car-a")
        assert stats.latest_reading.id == "a3"
        assert stats.ytd_mileage == 3000
        assert stats.total_readings == 3
        # Deltas 0, 1000, 2000 -> 3000 over two months with data
        assert stats.monthly_average == 1500
        assert stats.current_month_mileage == 2000

    def test_baseline_car(self, garage):
        stats = garage.car_stats("car-b")
        assert stats.ytd_mileage == 800
        assert stats.monthly_average == 800
        assert stats.current_month_mileage == 0

    def test_unknown_car(self, garage):
        with pytest.raises(CarNotFoundError):
            garage.car_stats("missing")


class TestTotals:
    """Totals consider active cars only."""

    def test_total_ytd(self, garage):
        assert garage.total_ytd_mileage == 3800

    def test_total_monthly_average(self, garage):
        assert garage.total_monthly_average == 2300

    def test_current_month_total(self, garage):
        assert garage.current_month_total == 2000

    def test_empty_garage(self):
        empty = Garage()
        assert empty.total_ytd_mileage == 0
        assert empty.total_monthly_average == 0
        assert empty.current_month_total == 0


class TestChartAndYear:
    """Tests for chart_data and year_stats."""

    def test_chart_data_ends_at_as_of_month(self, garage):
        chart = garage.chart_data("car-a", 6)
        assert len(chart) == 6
        assert chart[-1].month == "2026-03"
        assert chart[-1].mileage == 2000
        assert chart[-2].is_gap

    def test_year_stats_defaults_to_as_of_year(self, garage):
        stats = garage.year_stats("car-a")
        assert stats.year == 2026
        assert stats.total_mileage == 3000


class TestGarageValidation:
    """Tests for Garage.validate_reading."""

    def test_uses_car_baseline(self, garage):
        result = garage.validate_reading("car-b", "2025-12-31", 40000)
        # No earlier reading, so the starting odometer is the floor
        assert result.is_valid is False
        assert result.kind == Rejection.BELOW_BASELINE

    def test_uses_unit_label(self):
        garage = Garage(
            [Car("c", "C")],
            [Reading("r", "c", "2026-01-31", 1000)],
            AppSettings(distance_unit="kilometers"),
        )
        result = garage.validate_reading("c", "2026-02-28", 10)
        assert "1,000 km" in result.error
