"""Flask JSON API for odometer tracking."""

import logging
import os
from pathlib import Path

from flask import Flask, jsonify, request

from mileage import (
    AppSettings,
    Car,
    CarNotFoundError,
    CarRejected,
    DuplicateReadingError,
    InvalidDataError,
    ReadingNotFoundError,
    ReadingRejected,
    add_reading,
    create_car,
    deactivate_car,
    delete_reading,
    load_garage,
    save_settings,
    update_car,
    update_reading,
    UNCHANGED,
)
from mileage.loader import car_to_dict, reading_to_dict, settings_to_dict
from mileage.reading import DATE_PATTERN

app = Flask(__name__)
app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-prod")
app.config["DATA_FILE"] = Path(
    os.environ.get("ODOMETER_DATA_FILE", Path(__file__).parent.parent / "garage.yaml")
)
app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO")

logging.basicConfig(
    level=getattr(logging, app.config["LOG_LEVEL"].upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

NOTES_MAX_LENGTH = 200


def data_file() -> Path:
    return Path(app.config["DATA_FILE"])


class RequestError(Exception):
    """Invalid request body; rendered as 400 with field errors."""

    def __init__(self, errors):
        super().__init__("Invalid request")
        self.errors = errors


def require_json() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise RequestError([{"field": "", "message": "Expected a JSON object"}])
    return body


def parse_reading_body(body: dict, partial: bool = False) -> dict:
    """Check types of a reading payload. Returns snake_case fields."""
    errors = []
    fields = {}

    if not partial:
        car_id = body.get("carId")
        if not isinstance(car_id, str) or not car_id:
            errors.append({"field": "carId", "message": "Please select a car"})
        fields["car_id"] = car_id

    if "date" in body or not partial:
        value = body.get("date")
        if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value):
            errors.append({"field": "date", "message": "Date must be in YYYY-MM-DD format"})
        fields["reading_date"] = value

    if "reading" in body or not partial:
        value = body.get("reading")
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            errors.append({"field": "reading", "message": "Reading must be a non-negative integer"})
        fields["value"] = value

    if "notes" in body:
        notes = body.get("notes")
        if notes is not None and (not isinstance(notes, str) or len(notes) > NOTES_MAX_LENGTH):
            errors.append({"field": "notes", "message": "Notes too long"})
        fields["notes"] = notes

    if errors:
        raise RequestError(errors)
    return fields


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


CAR_KEYS = {
    "name": "name",
    "make": "make",
    "model": "model",
    "year": "year",
    "color": "color",
    "initialOdometer": "initial_odometer",
    "trackingStartDate": "tracking_start_date",
}


def parse_car_body(body: dict, partial: bool = False) -> dict:
    """Check types of a car payload. Returns snake_case fields present in it."""
    errors = []

    if "name" in body or not partial:
        name = body.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append({"field": "name", "message": "Name is required"})
        else:
            body = {**body, "name": name.strip()}

    for key in ("make", "model", "color"):
        value = body.get(key)
        if value is not None and not isinstance(value, str):
            errors.append({"field": key, "message": f"{key} must be text"})

    year = body.get("year")
    if year is not None and not _is_int(year):
        errors.append({"field": "year", "message": "Year must be a whole number"})

    odometer = body.get("initialOdometer")
    if odometer is not None and (not _is_int(odometer) or odometer < 0):
        errors.append({
            "field": "initialOdometer",
            "message": "Starting odometer must be a non-negative integer",
        })

    start = body.get("trackingStartDate")
    if start is not None and (not isinstance(start, str) or not DATE_PATTERN.fullmatch(start)):
        errors.append({
            "field": "trackingStartDate",
            "message": "Date must be in YYYY-MM-DD format",
        })

    if errors:
        raise RequestError(errors)
    return {attr: body[key] for key, attr in CAR_KEYS.items() if key in body}


# =============================================================================
# Error mapping
# =============================================================================


@app.errorhandler(RequestError)
def handle_request_error(e: RequestError):
    return jsonify({"error": "Invalid request", "details": e.errors}), 400


@app.errorhandler(DuplicateReadingError)
def handle_duplicate(e: DuplicateReadingError):
    return jsonify({"error": "A reading already exists for this date"}), 400


@app.errorhandler(ReadingRejected)
def handle_rejected(e: ReadingRejected):
    return jsonify({"error": str(e), **e.check.to_dict()}), 400


@app.errorhandler(CarRejected)
def handle_car_rejected(e: CarRejected):
    details = [{"field": "", "message": message} for message in e.errors]
    return jsonify({"error": "Invalid request", "details": details}), 400


@app.errorhandler(CarNotFoundError)
@app.errorhandler(ReadingNotFoundError)
def handle_not_found(e: LookupError):
    return jsonify({"error": str(e)}), 404


@app.errorhandler(InvalidDataError)
def handle_invalid_data(e: InvalidDataError):
    logger.error("Data file problem: %s", e)
    return jsonify({"error": "The stored data is invalid."}), 500


# =============================================================================
# Cars
# =============================================================================


@app.route("/api/cars", methods=["GET"])
def list_cars():
    """Active cars (all cars with ?all=true)."""
    garage = load_garage(data_file())
    include_all = request.args.get("all", "").lower() == "true"
    cars = garage.cars if include_all else garage.active_cars
    return jsonify({"data": [car_to_dict(c) for c in cars]})


@app.route("/api/cars", methods=["POST"])
def post_car():
    fields = parse_car_body(require_json())
    try:
        car = Car(id="", **fields)
    except ValueError as e:
        raise RequestError([{"field": "initialOdometer", "message": str(e)}])
    car = create_car(data_file(), car)
    return jsonify({"data": car_to_dict(car)}), 201


@app.route("/api/cars/<car_id>", methods=["GET"])
def get_car(car_id: str):
    car = load_garage(data_file()).get_car(car_id)
    if car is None:
        raise CarNotFoundError(car_id)
    return jsonify({"data": car_to_dict(car)})


@app.route("/api/cars/<car_id>", methods=["PATCH"])
def patch_car(car_id: str):
    fields = parse_car_body(require_json(), partial=True)
    try:
        car = update_car(data_file(), car_id, **fields)
    except (InvalidDataError, CarRejected):
        raise
    except ValueError as e:
        raise RequestError([{"field": "", "message": str(e)}])
    return jsonify({"data": car_to_dict(car)})


@app.route("/api/cars/<car_id>", methods=["DELETE"])
def delete_car(car_id: str):
    """Soft delete: the car is marked inactive and its readings stay."""
    car = deactivate_car(data_file(), car_id)
    return jsonify({"data": car_to_dict(car)})


@app.route("/api/cars/<car_id>/stats", methods=["GET"])
def car_stats(car_id: str):
    garage = load_garage(data_file())
    stats = garage.car_stats(car_id)
    year = request.args.get("year", type=int)
    year_stats = garage.year_stats(car_id, year)
    latest = stats.latest_reading
    return jsonify({
        "data": {
            "carId": car_id,
            "latestReading": reading_to_dict(latest) if latest else None,
            "ytdMileage": stats.ytd_mileage,
            "monthlyAverage": stats.monthly_average,
            "totalReadings": stats.total_readings,
            "currentMonthMileage": stats.current_month_mileage,
            "year": {
                "year": year_stats.year,
                "totalMileage": year_stats.total_mileage,
                "monthsTracked": year_stats.months_tracked,
                "averageMonthlyMileage": year_stats.average_monthly_mileage,
                "byMonth": [m.to_dict() for m in year_stats.by_month],
            },
        }
    })


@app.route("/api/cars/<car_id>/chart", methods=["GET"])
def car_chart(car_id: str):
    """Gap-filled monthly mileage for the last 6 or 12 months."""
    months = request.args.get("months", default=6, type=int)
    if months not in (6, 12):
        raise RequestError([{"field": "months", "message": "months must be 6 or 12"}])
    garage = load_garage(data_file())
    if garage.get_car(car_id) is None:
        raise CarNotFoundError(car_id)
    return jsonify({"data": [m.to_dict() for m in garage.chart_data(car_id, months)]})


@app.route("/api/stats", methods=["GET"])
def dashboard_stats():
    """Totals across all active cars."""
    garage = load_garage(data_file())
    return jsonify({
        "data": {
            "totalYtdMileage": garage.total_ytd_mileage,
            "totalMonthlyAverage": garage.total_monthly_average,
            "currentMonthTotal": garage.current_month_total,
            "unit": garage.settings.unit_label,
        }
    })


# =============================================================================
# Readings
# =============================================================================


@app.route("/api/readings", methods=["GET"])
def list_readings():
    """All readings, or one car's with ?carId=, oldest first."""
    garage = load_garage(data_file())
    car_id = request.args.get("carId") or None
    return jsonify({"data": [reading_to_dict(r) for r in garage.readings_for(car_id)]})


@app.route("/api/readings", methods=["POST"])
def post_reading():
    fields = parse_reading_body(require_json())
    reading = add_reading(
        data_file(),
        fields["car_id"],
        fields["reading_date"],
        fields["value"],
        fields.get("notes"),
    )
    return jsonify({"data": reading_to_dict(reading)}), 201


@app.route("/api/readings/validate", methods=["POST"])
def validate_reading():
    """Check a candidate reading and return the valid range."""
    body = require_json()
    fields = parse_reading_body(body)
    garage = load_garage(data_file())
    check = garage.validate_reading(
        fields["car_id"], fields["reading_date"], fields["value"],
        exclude_id=body.get("excludeId"),
    )
    return jsonify(check.to_dict())


@app.route("/api/readings/<reading_id>", methods=["GET"])
def get_reading(reading_id: str):
    reading = load_garage(data_file()).get_reading(reading_id)
    if reading is None:
        raise ReadingNotFoundError(reading_id)
    return jsonify({"data": reading_to_dict(reading)})


@app.route("/api/readings/<reading_id>", methods=["PATCH"])
def patch_reading(reading_id: str):
    fields = parse_reading_body(require_json(), partial=True)
    reading = update_reading(
        data_file(),
        reading_id,
        fields.get("reading_date"),
        fields.get("value"),
        fields.get("notes", UNCHANGED),
    )
    return jsonify({"data": reading_to_dict(reading)})


@app.route("/api/readings/<reading_id>", methods=["DELETE"])
def remove_reading(reading_id: str):
    delete_reading(data_file(), reading_id)
    return jsonify({"data": {"success": True}})


# =============================================================================
# Settings
# =============================================================================


@app.route("/api/settings", methods=["GET"])
def get_settings():
    return jsonify({"data": settings_to_dict(load_garage(data_file()).settings)})


@app.route("/api/settings", methods=["PATCH"])
def patch_settings():
    body = require_json()
    current = load_garage(data_file()).settings
    try:
        settings = AppSettings(
            body.get("defaultCarId", current.default_car_id),
            body.get("theme", current.theme),
            body.get("distanceUnit", current.distance_unit),
        )
    except ValueError as e:
        raise RequestError([{"field": "", "message": str(e)}])
    save_settings(data_file(), settings)
    return jsonify({"data": settings_to_dict(settings)})


if __name__ == "__main__":
    # Access from phone: use your computer's local IP (e.g., 192.168.1.x:5001)
    app.run(debug=True, host="0.0.0.0", port=5001)
