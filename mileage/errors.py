"""Exceptions raised by the persistence layer."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validation import SequenceCheck


class MileageError(Exception):
    """Base class for odometer tracker errors."""


class InvalidDataError(MileageError, ValueError):
    """A data file or import payload does not match the expected structure."""


class CarNotFoundError(MileageError, LookupError):
    def __init__(self, car_id: str):
        super().__init__(f"Car '{car_id}' not found")
        self.car_id = car_id


class ReadingNotFoundError(MileageError, LookupError):
    def __init__(self, reading_id: str):
        super().__init__(f"Reading '{reading_id}' not found")
        self.reading_id = reading_id


class ReadingRejected(MileageError, ValueError):
    """A write was refused because it breaks the reading sequence."""

    def __init__(self, check: "SequenceCheck"):
        super().__init__(check.error)
        self.check = check


class DuplicateReadingError(ReadingRejected):
    """A reading already exists for this car on this date."""


class ReadingSequenceError(ReadingRejected):
    """The value falls outside the range allowed by neighbouring readings."""


class CarRejected(MileageError, ValueError):
    """Car fields do not match the stored format (types or ranges)."""

    def __init__(self, errors):
        super().__init__("; ".join(errors))
        self.errors = errors
