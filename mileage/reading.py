"""Reading class for odometer observations."""

import re
from datetime import date, datetime
from typing import Optional, Union

from .formatting import month_key, month_label

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD string (or pass through a date)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value):
        raise ValueError(f"Invalid date {value!r} (expected YYYY-MM-DD)")
    return date.fromisoformat(value)


class Reading:
    """An odometer value observed on a calendar day."""

    def __init__(
            self,
            id: str,
            car_id: str,
            date: Union[str, date],
            reading: int,
            notes: Optional[str] = None,
            created_at: Optional[str] = None,
            updated_at: Optional[str] = None,
    ):
        self.id = id
        self.car_id = car_id
        self.date = parse_date(date)
        self.reading = reading
        self.notes = notes
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def month_key(self) -> str:
        """Calendar month this reading belongs to (YYYY-MM)."""
        return month_key(self.date)

    @property
    def month_label(self) -> str:
        return month_label(self.date)

    def __repr__(self) -> str:
        return f"Reading({self.car_id!r}, {self.date.isoformat()}, {self.reading})"
