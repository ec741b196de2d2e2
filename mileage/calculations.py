"""Mileage aggregation over a car's reading history."""

import math
from datetime import date
from dateutil.relativedelta import relativedelta
from typing import Iterable, List, Optional, TYPE_CHECKING

from .formatting import format_number, month_key, month_label
from .monthly_mileage import MonthlyMileage
from .reading import Reading
from .stats import YearStats

if TYPE_CHECKING:
    from .car import Car

__all__ = [
    "calculate_monthly_mileage",
    "fill_monthly_mileage_gaps",
    "calculate_ytd_mileage",
    "calculate_year_stats",
    "get_latest_reading",
    "get_current_month_mileage",
    "get_end_of_month",
    "format_number",
    "round_half_up",
]


def round_half_up(value: float) -> int:
    """Round to the nearest int, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def _sorted_car_readings(readings: Iterable[Reading], car_id: str) -> List[Reading]:
    return sorted((r for r in readings if r.car_id == car_id), key=lambda r: r.date)


def calculate_monthly_mileage(
    readings: Iterable[Reading], car_id: str, car: Optional["Car"] = None
) -> List[MonthlyMileage]:
    """
    Build one period per reading, ordered by date.

    Each period's mileage is the difference from the previous reading. The
    first reading has no anchor, so it gets 0 unless the car's tracking
    started in the same calendar month, in which case the initial odometer
    is used as the anchor.
    """
    car_readings = _sorted_car_readings(readings, car_id)

    monthly = []
    previous = None
    for current in car_readings:
        if previous is not None:
            mileage = max(0, current.reading - previous.reading)
        elif (
            car is not None
            and car.has_baseline
            and month_key(car.tracking_start_date) == current.month_key
        ):
            mileage = max(0, current.reading - car.initial_odometer)
        else:
            mileage = 0

        monthly.append(
            MonthlyMileage(
                month=current.month_key,
                month_label=current.month_label,
                mileage=mileage,
                reading=current.reading,
                previous_reading=previous.reading if previous is not None else None,
            )
        )
        previous = current

    return monthly


def fill_monthly_mileage_gaps(
    monthly_data: Iterable[MonthlyMileage],
    months_to_show: int,
    today: Optional[date] = None,
) -> List[MonthlyMileage]:
    """
    Fill months without a reading with zero-mileage placeholders.

    Returns exactly months_to_show contiguous periods ending at the month of
    `today`. When several periods share a month, the last one wins.
    """
    if isinstance(months_to_show, bool) or not isinstance(months_to_show, int) \
            or months_to_show < 1:
        raise ValueError(f"months_to_show must be a positive integer, got {months_to_show!r}")

    by_month = {m.month: m for m in monthly_data}

    end_month = (today or date.today()).replace(day=1)
    current = end_month - relativedelta(months=months_to_show - 1)

    filled = []
    for _ in range(months_to_show):
        key = month_key(current)
        existing = by_month.get(key)
        if existing is not None:
            filled.append(existing)
        else:
            filled.append(
                MonthlyMileage(
                    month=key,
                    month_label=month_label(current),
                    mileage=0,
                    reading=0,
                    previous_reading=None,
                    is_gap=True,
                )
            )
        current += relativedelta(months=1)

    return filled


def calculate_ytd_mileage(
    readings: Iterable[Reading],
    car_id: str,
    year: Optional[int] = None,
    car: Optional["Car"] = None,
    today: Optional[date] = None,
) -> int:
    """
    Mileage driven in a calendar year.

    Uses the last reading before the year as the anchor when there is one,
    otherwise the first reading inside the year. A single in-year reading
    with no anchor only yields mileage when the car's tracking started in
    that same year.
    """
    if year is None:
        year = (today or date.today()).year

    car_readings = _sorted_car_readings(readings, car_id)
    year_readings = [r for r in car_readings if r.date.year == year]
    if not year_readings:
        return 0

    before_year = [r for r in car_readings if r.date.year < year]
    anchor = before_year[-1] if before_year else None

    if len(year_readings) == 1 and anchor is None:
        if (
            car is not None
            and car.has_baseline
            and car.tracking_start_date.year == year
        ):
            return max(0, year_readings[0].reading - car.initial_odometer)
        return 0

    first = anchor if anchor is not None else year_readings[0]
    return max(0, year_readings[-1].reading - first.reading)


def calculate_year_stats(
    readings: Iterable[Reading],
    car_id: str,
    year: Optional[int] = None,
    car: Optional["Car"] = None,
    today: Optional[date] = None,
) -> YearStats:
    """Summarize the monthly periods that fall inside a year."""
    if year is None:
        year = (today or date.today()).year

    prefix = f"{year:04d}-"
    by_month = [
        m for m in calculate_monthly_mileage(readings, car_id, car)
        if m.month.startswith(prefix)
    ]
    total = sum(m.mileage for m in by_month)
    tracked = sum(1 for m in by_month if m.mileage > 0)

    return YearStats(
        year=year,
        total_mileage=total,
        months_tracked=tracked,
        average_monthly_mileage=round_half_up(total / tracked) if tracked else 0,
        by_month=by_month,
    )


def get_latest_reading(readings: Iterable[Reading], car_id: str) -> Optional[Reading]:
    """Most recent reading by date for a car."""
    car_readings = _sorted_car_readings(readings, car_id)
    return car_readings[-1] if car_readings else None


def get_current_month_mileage(
    readings: Iterable[Reading],
    car_id: str,
    car: Optional["Car"] = None,
    today: Optional[date] = None,
) -> int:
    """Mileage of the first period in the current month, or 0."""
    key = month_key(today or date.today())
    for period in calculate_monthly_mileage(readings, car_id, car):
        if period.month == key:
            return period.mileage
    return 0


def get_end_of_month(day: Optional[date] = None) -> date:
    """Last day of the month containing `day` (default: today)."""
    day = day or date.today()
    return day + relativedelta(day=31)
