"""
Odometer reading models and mileage statistics.

This package provides:
- Reading: a dated odometer observation
- Car: a tracked vehicle with an optional starting baseline
- MonthlyMileage: derived per-month mileage
- YearStats / CarStats: summary statistics
- AppSettings: user preferences
- Garage: main aggregate combining all data
- validate_reading_in_sequence: chronological validation
- calculate_*: mileage aggregation
"""

from .reading import Reading
from .car import Car
from .settings import AppSettings
from .monthly_mileage import MonthlyMileage
from .stats import YearStats, CarStats
from .validation import (
    Rejection,
    SequenceCheck,
    get_reading_after_date,
    get_reading_before_date,
    validate_reading_in_sequence,
)
from .calculations import (
    calculate_monthly_mileage,
    calculate_year_stats,
    calculate_ytd_mileage,
    fill_monthly_mileage_gaps,
    format_number,
    get_current_month_mileage,
    get_end_of_month,
    get_latest_reading,
)
from .garage import Garage
from .errors import (
    MileageError,
    InvalidDataError,
    CarNotFoundError,
    ReadingNotFoundError,
    ReadingRejected,
    DuplicateReadingError,
    ReadingSequenceError,
    CarRejected,
)
from .loader import (
    load_garage,
    init_data_file,
    create_car,
    update_car,
    deactivate_car,
    add_reading,
    update_reading,
    delete_reading,
    save_settings,
    export_data,
    import_data,
    UNCHANGED,
)

__all__ = [
    "Reading",
    "Car",
    "AppSettings",
    "MonthlyMileage",
    "YearStats",
    "CarStats",
    "Garage",
    "Rejection",
    "SequenceCheck",
    "get_reading_before_date",
    "get_reading_after_date",
    "validate_reading_in_sequence",
    "calculate_monthly_mileage",
    "fill_monthly_mileage_gaps",
    "calculate_ytd_mileage",
    "calculate_year_stats",
    "get_latest_reading",
    "get_current_month_mileage",
    "get_end_of_month",
    "format_number",
    "MileageError",
    "InvalidDataError",
    "CarNotFoundError",
    "ReadingNotFoundError",
    "ReadingRejected",
    "DuplicateReadingError",
    "ReadingSequenceError",
    "CarRejected",
    "load_garage",
    "init_data_file",
    "create_car",
    "update_car",
    "deactivate_car",
    "add_reading",
    "update_reading",
    "delete_reading",
    "save_settings",
    "export_data",
    "import_data",
    "UNCHANGED",
]
