"""Garage class - the main aggregate for cars, readings and statistics."""

from datetime import date
from typing import List, Optional, Union

from .car import Car
from .reading import Reading
from .settings import AppSettings
from .stats import CarStats, YearStats
from .monthly_mileage import MonthlyMileage
from .calculations import (
    calculate_monthly_mileage,
    calculate_year_stats,
    calculate_ytd_mileage,
    fill_monthly_mileage_gaps,
    get_current_month_mileage,
    get_latest_reading,
    round_half_up,
)
from .errors import CarNotFoundError
from .validation import SequenceCheck, validate_reading_in_sequence


class Garage:
    """All cars, their readings and the user's settings."""

    def __init__(
        self,
        cars: Optional[List[Car]] = None,
        readings: Optional[List[Reading]] = None,
        settings: Optional[AppSettings] = None,
        as_of_date: Optional[Union[str, date]] = None,
    ):
        self.cars = cars or []
        self.readings = readings or []
        self.settings = settings or AppSettings()
        self._as_of_date = as_of_date

    @property
    def as_of_date(self) -> date:
        """Date statistics are computed for, defaults to today."""
        if self._as_of_date is None:
            return date.today()
        if isinstance(self._as_of_date, date):
            return self._as_of_date
        return date.fromisoformat(self._as_of_date)

    @property
    def active_cars(self) -> List[Car]:
        return [c for c in self.cars if c.is_active]

    def get_car(self, car_id: str) -> Optional[Car]:
        """Find a car by id, active or not."""
        for car in self.cars:
            if car.id == car_id:
                return car
        return None

    def get_reading(self, reading_id: str) -> Optional[Reading]:
        for reading in self.readings:
            if reading.id == reading_id:
                return reading
        return None

    def readings_for(self, car_id: Optional[str] = None, reverse: bool = False) -> List[Reading]:
        """Readings for a car (or all cars) sorted by date."""
        selected = [r for r in self.readings if car_id is None or r.car_id == car_id]
        return sorted(selected, key=lambda r: (r.date, r.car_id), reverse=reverse)

    def monthly_data(self, car_id: str) -> List[MonthlyMileage]:
        return calculate_monthly_mileage(self.readings, car_id, self.get_car(car_id))

    def chart_data(self, car_id: str, months: int = 6) -> List[MonthlyMileage]:
        """Gap-filled monthly mileage ending at the current month."""
        return fill_monthly_mileage_gaps(self.monthly_data(car_id), months, self.as_of_date)

    def year_stats(self, car_id: str, year: Optional[int] = None) -> YearStats:
        return calculate_year_stats(
            self.readings, car_id, year, self.get_car(car_id), today=self.as_of_date
        )

    def car_stats(self, car_id: str) -> CarStats:
        """
        Dashboard numbers for a car.

        monthly_average divides the total of all periods by the number of
        periods that recorded any mileage, so gap months do not drag it down.
        """
        car = self.get_car(car_id)
        if car is None:
            raise CarNotFoundError(car_id)

        today = self.as_of_date
        monthly = calculate_monthly_mileage(self.readings, car_id, car)
        months_with_data = sum(1 for m in monthly if m.mileage > 0)
        total = sum(m.mileage for m in monthly)

        return CarStats(
            car=car,
            latest_reading=get_latest_reading(self.readings, car_id),
            ytd_mileage=calculate_ytd_mileage(self.readings, car_id, car=car, today=today),
            monthly_average=round_half_up(total / months_with_data) if months_with_data else 0,
            total_readings=len(monthly),
            current_month_mileage=get_current_month_mileage(
                self.readings, car_id, car, today=today
            ),
        )

    def all_car_stats(self) -> List[CarStats]:
        """Stats for every active car."""
        return [self.car_stats(car.id) for car in self.active_cars]

    @property
    def total_ytd_mileage(self) -> int:
        return sum(s.ytd_mileage for s in self.all_car_stats())

    @property
    def total_monthly_average(self) -> int:
        return sum(s.monthly_average for s in self.all_car_stats() if s.monthly_average > 0)

    @property
    def current_month_total(self) -> int:
        return sum(s.current_month_mileage for s in self.all_car_stats())

    def validate_reading(
        self,
        car_id: str,
        target_date: Union[str, date],
        value: int,
        exclude_id: Optional[str] = None,
    ) -> SequenceCheck:
        """Validate a candidate reading against this garage's history."""
        return validate_reading_in_sequence(
            self.readings,
            car_id,
            target_date,
            value,
            exclude_id=exclude_id,
            car=self.get_car(car_id),
            unit=self.settings.unit_label,
        )
