"""Car class for tracked vehicles."""

from datetime import date
from typing import Optional, Union

from .reading import parse_date


class Car:
    """A tracked vehicle with an optional pre-tracking baseline."""

    def __init__(
        self,
        id: str,
        name: str,
        make: Optional[str] = None,
        model: Optional[str] = None,
        year: Optional[int] = None,
        color: Optional[str] = None,
        is_active: bool = True,
        initial_odometer: Optional[int] = None,
        tracking_start_date: Optional[Union[str, date]] = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        if (initial_odometer is None) != (tracking_start_date is None):
            raise ValueError(
                "Starting odometer and tracking start date must both be provided together"
            )
        self.id = id
        self.name = name
        self.make = make
        self.model = model
        self.year = year
        self.color = color
        self.is_active = True if is_active is None else is_active
        self.initial_odometer = initial_odometer
        self.tracking_start_date = (
            parse_date(tracking_start_date) if tracking_start_date is not None else None
        )
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def has_baseline(self) -> bool:
        """True when both initial odometer and tracking start date are set."""
        return self.initial_odometer is not None and self.tracking_start_date is not None

    @property
    def display_name(self) -> str:
        """Human-readable vehicle name."""
        if self.name:
            return self.name
        parts = [str(p) for p in (self.year, self.make, self.model) if p]
        return " ".join(parts) or self.id
