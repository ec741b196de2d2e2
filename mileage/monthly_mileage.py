"""MonthlyMileage dataclass for derived per-month mileage."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class MonthlyMileage:
    """Mileage attributed to one calendar month. Derived, never stored."""

    month: str
    month_label: str
    mileage: int
    reading: int
    previous_reading: Optional[int] = None
    is_gap: bool = False

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "monthLabel": self.month_label,
            "mileage": self.mileage,
            "reading": self.reading,
            "previousReading": self.previous_reading,
        }
