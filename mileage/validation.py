"""
Chronological sequence validation for odometer readings.

A candidate reading is checked against its nearest neighbours by date, not
against the latest reading overall, so backfilling a past month works as long
as the value fits between the readings on either side of it.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, List, Optional, TYPE_CHECKING, Union

from .formatting import format_number
from .reading import Reading, parse_date

if TYPE_CHECKING:
    from .car import Car


class Rejection(Enum):
    """Why a candidate reading was refused."""

    DUPLICATE_DATE = "duplicate_date"
    BELOW_PREVIOUS = "below_previous"
    ABOVE_NEXT = "above_next"
    BELOW_BASELINE = "below_baseline"
    INVALID_DATE = "invalid_date"
    INVALID_VALUE = "invalid_value"


@dataclass(frozen=True)
class SequenceCheck:
    """Outcome of validating a candidate reading."""

    is_valid: bool
    error: Optional[str] = None
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    kind: Optional[Rejection] = None

    def to_dict(self) -> dict:
        """Serialize to the {isValid, error, minValue, maxValue} contract."""
        d: dict = {"isValid": self.is_valid}
        if self.error is not None:
            d["error"] = self.error
        if self.min_value is not None:
            d["minValue"] = self.min_value
        if self.max_value is not None:
            d["maxValue"] = self.max_value
        return d


def _car_readings(readings: Iterable[Reading], car_id: str) -> List[Reading]:
    return [r for r in readings if r.car_id == car_id]


def get_reading_before_date(
    readings: Iterable[Reading], car_id: str, target_date: Union[str, date]
) -> Optional[Reading]:
    """Get the reading immediately before a date for a car."""
    target = parse_date(target_date)
    earlier = [r for r in _car_readings(readings, car_id) if r.date < target]
    if not earlier:
        return None
    return max(earlier, key=lambda r: r.date)


def get_reading_after_date(
    readings: Iterable[Reading], car_id: str, target_date: Union[str, date]
) -> Optional[Reading]:
    """Get the reading immediately after a date for a car."""
    target = parse_date(target_date)
    later = [r for r in _car_readings(readings, car_id) if r.date > target]
    if not later:
        return None
    return min(later, key=lambda r: r.date)


def validate_reading_in_sequence(
    readings: Iterable[Reading],
    car_id: str,
    target_date: Union[str, date],
    target_reading: int,
    exclude_id: Optional[str] = None,
    car: Optional["Car"] = None,
    unit: str = "mi",
) -> SequenceCheck:
    """
    Check that a reading fits chronologically within a car's history.

    The value must be >= the nearest earlier reading and <= the nearest
    later reading; equality at either bound is allowed. The duplicate-date
    check runs first so an occupied date is never reported as a range error.

    Args:
        readings: All known readings (any car; filtered here)
        exclude_id: Reading to ignore, used when editing an existing reading
        car: When given and it has a baseline, the first reading of the car
            may not fall below its initial odometer
        unit: Distance suffix used in error messages
    """
    try:
        target = parse_date(target_date)
    except (TypeError, ValueError):
        return SequenceCheck(
            is_valid=False,
            error=f"Invalid date '{target_date}' (expected YYYY-MM-DD)",
            kind=Rejection.INVALID_DATE,
        )

    if (
        isinstance(target_reading, bool)
        or not isinstance(target_reading, int)
        or target_reading < 0
    ):
        return SequenceCheck(
            is_valid=False,
            error="Reading must be a non-negative whole number",
            kind=Rejection.INVALID_VALUE,
        )

    candidates = [
        r for r in _car_readings(readings, car_id)
        if exclude_id is None or r.id != exclude_id
    ]

    if any(r.date == target for r in candidates):
        return SequenceCheck(
            is_valid=False,
            error=f"A reading already exists for {target.isoformat()}",
            kind=Rejection.DUPLICATE_DATE,
        )

    previous = get_reading_before_date(candidates, car_id, target)
    following = get_reading_after_date(candidates, car_id, target)

    if previous is not None and target_reading < previous.reading:
        return SequenceCheck(
            is_valid=False,
            error=(
                f"Reading must be at least {format_number(previous.reading)} {unit} "
                f"({previous.date.isoformat()} reading)"
            ),
            min_value=previous.reading,
            kind=Rejection.BELOW_PREVIOUS,
        )

    if following is not None and target_reading > following.reading:
        return SequenceCheck(
            is_valid=False,
            error=(
                f"Reading cannot exceed {format_number(following.reading)} {unit} "
                f"({following.date.isoformat()} reading)"
            ),
            max_value=following.reading,
            kind=Rejection.ABOVE_NEXT,
        )

    min_value = previous.reading if previous is not None else None
    if previous is None and car is not None and car.has_baseline:
        if target_reading < car.initial_odometer:
            return SequenceCheck(
                is_valid=False,
                error=(
                    f"Reading must be at least {format_number(car.initial_odometer)} "
                    f"{unit} (starting odometer)"
                ),
                min_value=car.initial_odometer,
                kind=Rejection.BELOW_BASELINE,
            )
        min_value = car.initial_odometer

    return SequenceCheck(
        is_valid=True,
        min_value=min_value,
        max_value=following.reading if following is not None else None,
    )
