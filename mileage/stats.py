"""Dataclasses for summary statistics."""

from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING

from .monthly_mileage import MonthlyMileage

if TYPE_CHECKING:
    from .car import Car
    from .reading import Reading


@dataclass
class YearStats:
    """Mileage totals for one car over one calendar year."""

    year: int
    total_mileage: int = 0
    months_tracked: int = 0
    average_monthly_mileage: int = 0
    by_month: List[MonthlyMileage] = field(default_factory=list)


@dataclass
class CarStats:
    """Dashboard summary for a single car."""

    car: "Car"
    latest_reading: Optional["Reading"] = None
    ytd_mileage: int = 0
    monthly_average: int = 0
    total_readings: int = 0
    current_month_mileage: int = 0
