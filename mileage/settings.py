"""AppSettings class for per-user preferences."""

from typing import Optional

THEMES = ("auto", "light", "dark")
DISTANCE_UNITS = ("miles", "kilometers")


class AppSettings:
    """Display preferences stored alongside the cars and readings."""

    def __init__(
            self,
            default_car_id: Optional[str] = None,
            theme: str = "auto",
            distance_unit: str = "miles",
    ):
        if theme not in THEMES:
            raise ValueError(f"Unknown theme '{theme}'")
        if distance_unit not in DISTANCE_UNITS:
            raise ValueError(f"Unknown distance unit '{distance_unit}'")
        self.default_car_id = default_car_id
        self.theme = theme
        self.distance_unit = distance_unit

    @property
    def unit_label(self) -> str:
        """Short unit suffix used in messages ("mi" or "km")."""
        return "km" if self.distance_unit == "kilometers" else "mi"
