"""
YAML loading and saving utilities for odometer data.

Every write takes the data file's lock, reloads the file and re-validates
the change against the readings stored at that moment, so a candidate
checked against a stale snapshot is still refused if it no longer fits.
Files are replaced atomically, so readers never see a partial write.
"""

import logging
import os
import tempfile
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from filelock import FileLock

from .car import Car
from .errors import (
    CarNotFoundError,
    CarRejected,
    DuplicateReadingError,
    InvalidDataError,
    ReadingNotFoundError,
    ReadingRejected,
    ReadingSequenceError,
)
from .garage import Garage
from .reading import Reading, parse_date
from .schema import definition_schema, schema_errors
from .settings import AppSettings
from .validation import Rejection, SequenceCheck, validate_reading_in_sequence

logger = logging.getLogger(__name__)

CURRENT_VERSION = 2

# Passed for an optional field that should keep its stored value
UNCHANGED = object()

_CAR_FIELDS = {
    "name": "name",
    "make": "make",
    "model": "model",
    "year": "year",
    "color": "color",
    "initial_odometer": "initialOdometer",
    "tracking_start_date": "trackingStartDate",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: Optional[Union[str, date]]) -> Optional[str]:
    if value is None:
        return None
    return parse_date(value).isoformat()


# =============================================================================
# Parsing and serialization
# =============================================================================


def _parse_car(dct: Dict[str, Any]) -> Car:
    return Car(
        dct["id"],
        dct["name"],
        dct.get("make"),
        dct.get("model"),
        dct.get("year"),
        dct.get("color"),
        dct.get("isActive", True),
        dct.get("initialOdometer"),
        dct.get("trackingStartDate"),
        dct.get("createdAt"),
        dct.get("updatedAt"),
    )


def _parse_reading(dct: Dict[str, Any]) -> Reading:
    return Reading(
        dct["id"],
        dct["carId"],
        dct["date"],
        dct["reading"],
        dct.get("notes"),
        dct.get("createdAt"),
        dct.get("updatedAt"),
    )


def _parse_settings(dct: Optional[Dict[str, Any]]) -> AppSettings:
    dct = dct or {}
    return AppSettings(
        dct.get("defaultCarId"),
        dct.get("theme") or "auto",
        dct.get("distanceUnit") or "miles",
    )


def car_to_dict(car: Car) -> Dict[str, Any]:
    """Serialize a Car to the stored dict format (camelCase keys)."""
    d: Dict[str, Any] = {"id": car.id, "name": car.name}
    if car.make is not None:
        d["make"] = car.make
    if car.model is not None:
        d["model"] = car.model
    if car.year is not None:
        d["year"] = car.year
    if car.color is not None:
        d["color"] = car.color
    d["isActive"] = car.is_active
    if car.has_baseline:
        d["initialOdometer"] = car.initial_odometer
        d["trackingStartDate"] = car.tracking_start_date.isoformat()
    if car.created_at is not None:
        d["createdAt"] = car.created_at
    if car.updated_at is not None:
        d["updatedAt"] = car.updated_at
    return d


def reading_to_dict(reading: Reading) -> Dict[str, Any]:
    """Serialize a Reading to the stored dict format (camelCase keys)."""
    d: Dict[str, Any] = {
        "id": reading.id,
        "carId": reading.car_id,
        "date": reading.date.isoformat(),
        "reading": reading.reading,
    }
    if reading.notes is not None:
        d["notes"] = reading.notes
    if reading.created_at is not None:
        d["createdAt"] = reading.created_at
    if reading.updated_at is not None:
        d["updatedAt"] = reading.updated_at
    return d


def settings_to_dict(settings: AppSettings) -> Dict[str, Any]:
    return {
        "defaultCarId": settings.default_car_id,
        "theme": settings.theme,
        "distanceUnit": settings.distance_unit,
    }


def _lock(filename: Union[str, Path]) -> FileLock:
    """Exclusive lock held across a load, validate and write sequence."""
    return FileLock(f"{filename}.lock")


def _stringify_dates(items: Any, day_keys: List[str], time_keys: List[str]) -> None:
    # Unquoted YAML dates and timestamps load as date/datetime objects
    if not isinstance(items, list):
        return
    for item in items:
        if not isinstance(item, dict):
            continue
        for key in day_keys:
            if isinstance(item.get(key), date):
                item[key] = parse_date(item[key]).isoformat()
        for key in time_keys:
            if isinstance(item.get(key), date):
                item[key] = item[key].isoformat()


def _check(data: Any, source: Union[str, Path]) -> None:
    errors = schema_errors(data)
    if errors:
        raise InvalidDataError(f"{source}: {'; '.join(errors)}")


def _load_raw(filename: Union[str, Path]) -> Dict[str, Any]:
    with open(filename, "r") as fp:
        data = yaml.load(fp, Loader=yaml.SafeLoader)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidDataError(f"{filename}: expected a mapping at the top level")
    if data.get("cars") is None:
        data["cars"] = []
    if data.get("readings") is None:
        data["readings"] = []
    stamps = ["createdAt", "updatedAt"]
    _stringify_dates(data["cars"], ["trackingStartDate"], stamps)
    _stringify_dates(data["readings"], ["date"], stamps)
    _check(data, filename)
    return data


def _dump(filename: Union[str, Path], data: Dict[str, Any]) -> None:
    """Write to a temp file beside the target, then swap it in."""
    _check(data, filename)
    path = Path(filename)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as fp:
            yaml.dump(
                data,
                fp,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
                width=120,
            )
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise


def _check_car(car: Car) -> Dict[str, Any]:
    """Serialize a car, refusing values the data file cannot hold."""
    dct = car_to_dict(car)
    errors = schema_errors(dct, definition_schema("car"))
    if errors:
        raise CarRejected(errors)
    return dct


def _garage_from_raw(data: Dict[str, Any], as_of_date=None) -> Garage:
    try:
        return Garage(
            [_parse_car(c) for c in data["cars"]],
            [_parse_reading(r) for r in data["readings"]],
            _parse_settings(data.get("settings")),
            as_of_date,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidDataError(f"Malformed data: {e}") from e


def _raise_rejection(check: SequenceCheck) -> None:
    logger.warning("Reading rejected (%s): %s", check.kind.value, check.error)
    if check.kind == Rejection.DUPLICATE_DATE:
        raise DuplicateReadingError(check)
    if check.kind in (Rejection.INVALID_DATE, Rejection.INVALID_VALUE):
        raise ReadingRejected(check)
    raise ReadingSequenceError(check)


def _index_of(items, item_id: str) -> Optional[int]:
    for i, item in enumerate(items):
        if item.get("id") == item_id:
            return i
    return None


# =============================================================================
# Loading
# =============================================================================


def load_garage(filename: Union[str, Path], as_of_date=None) -> Garage:
    """Load all cars, readings and settings from a YAML data file."""
    return _garage_from_raw(_load_raw(filename), as_of_date)


def init_data_file(filename: Union[str, Path]) -> None:
    """Create an empty data file. Refuses to overwrite an existing one."""
    path = Path(filename)
    with _lock(path):
        if path.exists():
            raise FileExistsError(f"{path} already exists")
        _dump(path, {
            "settings": settings_to_dict(AppSettings()),
            "cars": [],
            "readings": [],
        })
    logger.info("Created data file %s", path)


# =============================================================================
# Cars
# =============================================================================


def create_car(filename: Union[str, Path], car: Car) -> Car:
    """Append a car to the data file, assigning an id if it has none."""
    if not car.id:
        car.id = str(uuid.uuid4())
    car.created_at = car.created_at or _now()
    dct = _check_car(car)

    with _lock(filename):
        data = _load_raw(filename)
        if _index_of(data["cars"], car.id) is not None:
            raise InvalidDataError(f"Car '{car.id}' already exists")
        data["cars"].append(dct)
        _dump(filename, data)
    logger.info("Created car %s (%s)", car.id, car.display_name)
    return car


def update_car(filename: Union[str, Path], car_id: str, **fields: Any) -> Car:
    """
    Update descriptive fields of a car.

    Accepts the snake_case names of Car attributes (name, make, model, year,
    color, initial_odometer, tracking_start_date). The baseline pair is
    checked after the update is applied.
    """
    unknown = set(fields) - set(_CAR_FIELDS)
    if unknown:
        raise TypeError(f"Unknown car field(s): {', '.join(sorted(unknown))}")

    with _lock(filename):
        data = _load_raw(filename)
        index = _index_of(data["cars"], car_id)
        if index is None:
            raise CarNotFoundError(car_id)

        raw = dict(data["cars"][index])
        for attr, key in _CAR_FIELDS.items():
            if attr in fields:
                value = fields[attr]
                if attr == "tracking_start_date":
                    value = _iso(value)
                if value is None:
                    raw.pop(key, None)
                else:
                    raw[key] = value
        raw["updatedAt"] = _now()

        car = _parse_car(raw)
        data["cars"][index] = _check_car(car)
        _dump(filename, data)
    logger.info("Updated car %s", car_id)
    return car


def deactivate_car(filename: Union[str, Path], car_id: str) -> Car:
    """Retire a car. Its readings are kept."""
    with _lock(filename):
        data = _load_raw(filename)
        index = _index_of(data["cars"], car_id)
        if index is None:
            raise CarNotFoundError(car_id)

        data["cars"][index]["isActive"] = False
        data["cars"][index]["updatedAt"] = _now()
        settings = data.get("settings") or {}
        if settings.get("defaultCarId") == car_id:
            settings["defaultCarId"] = None
        _dump(filename, data)
    logger.info("Deactivated car %s", car_id)
    return _parse_car(data["cars"][index])


# =============================================================================
# Readings
# =============================================================================


def add_reading(
    filename: Union[str, Path],
    car_id: str,
    reading_date: Union[str, date],
    value: int,
    notes: Optional[str] = None,
) -> Reading:
    """
    Append a reading after validating it against the stored history.

    Raises DuplicateReadingError or ReadingSequenceError when the reading
    does not fit, CarNotFoundError when the car does not exist.
    """
    with _lock(filename):
        data = _load_raw(filename)
        garage = _garage_from_raw(data)
        if garage.get_car(car_id) is None:
            raise CarNotFoundError(car_id)

        check = garage.validate_reading(car_id, reading_date, value)
        if not check.is_valid:
            _raise_rejection(check)

        reading = Reading(str(uuid.uuid4()), car_id, reading_date, value, notes, _now())
        data["readings"].append(reading_to_dict(reading))
        _dump(filename, data)
    logger.info("Added reading %s for car %s: %s on %s",
                reading.id, car_id, value, reading.date.isoformat())
    return reading


def update_reading(
    filename: Union[str, Path],
    reading_id: str,
    reading_date: Optional[Union[str, date]] = None,
    value: Optional[int] = None,
    notes: Any = UNCHANGED,
) -> Reading:
    """
    Edit a reading in place.

    A date or value of None keeps the stored one. Notes are kept unless
    given; passing notes=None clears them. The reading is validated
    against its siblings with itself excluded.
    """
    with _lock(filename):
        data = _load_raw(filename)
        garage = _garage_from_raw(data)
        existing = garage.get_reading(reading_id)
        if existing is None:
            raise ReadingNotFoundError(reading_id)

        new_date = reading_date if reading_date is not None else existing.date
        new_value = value if value is not None else existing.reading

        check = garage.validate_reading(
            existing.car_id, new_date, new_value, exclude_id=reading_id
        )
        if not check.is_valid:
            _raise_rejection(check)

        updated = Reading(
            existing.id,
            existing.car_id,
            new_date,
            new_value,
            existing.notes if notes is UNCHANGED else notes,
            existing.created_at,
            _now(),
        )
        data["readings"][_index_of(data["readings"], reading_id)] = reading_to_dict(updated)
        _dump(filename, data)
    logger.info("Updated reading %s", reading_id)
    return updated


def delete_reading(filename: Union[str, Path], reading_id: str) -> None:
    """Remove a reading from the data file."""
    with _lock(filename):
        data = _load_raw(filename)
        index = _index_of(data["readings"], reading_id)
        if index is None:
            raise ReadingNotFoundError(reading_id)

        del data["readings"][index]
        _dump(filename, data)
    logger.info("Deleted reading %s", reading_id)


# =============================================================================
# Settings
# =============================================================================


def save_settings(filename: Union[str, Path], settings: AppSettings) -> None:
    """Replace the settings section of the data file."""
    with _lock(filename):
        data = _load_raw(filename)
        if settings.default_car_id is not None and \
                _index_of(data["cars"], settings.default_car_id) is None:
            raise CarNotFoundError(settings.default_car_id)
        data["settings"] = settings_to_dict(settings)
        _dump(filename, data)
    logger.info("Saved settings")


# =============================================================================
# Export / import
# =============================================================================


def export_data(filename: Union[str, Path]) -> Dict[str, Any]:
    """Build a migration payload from a data file."""
    garage = load_garage(filename)
    return {
        "version": CURRENT_VERSION,
        "exportedAt": _now(),
        "cars": [car_to_dict(c) for c in garage.cars],
        "readings": [reading_to_dict(r) for r in garage.readings_for()],
        "settings": settings_to_dict(garage.settings),
    }


def import_data(filename: Union[str, Path], payload: Any) -> Garage:
    """
    Replace a data file with the contents of a migration payload.

    The payload structure is checked against the schema. Sequence problems
    in imported history are logged but not rejected; statistics clamp
    negative deltas to zero.
    """
    errors = schema_errors(payload)
    if errors:
        raise InvalidDataError("; ".join(errors))

    garage = _garage_from_raw(payload)
    for car in garage.cars:
        history = garage.readings_for(car.id)
        for i, reading in enumerate(history):
            check = validate_reading_in_sequence(
                history[:i], car.id, reading.date, reading.reading
            )
            if not check.is_valid:
                logger.warning("Imported reading %s for car %s: %s",
                               reading.id, car.id, check.error)

    with _lock(filename):
        _dump(filename, {
            "settings": settings_to_dict(garage.settings),
            "cars": [car_to_dict(c) for c in garage.cars],
            "readings": [reading_to_dict(r) for r in garage.readings],
        })
    logger.info("Imported %d cars and %d readings into %s",
                len(garage.cars), len(garage.readings), filename)
    return garage
