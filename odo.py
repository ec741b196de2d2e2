#!/usr/bin/env python3
"""
Unified CLI for odometer tracking.

Commands:
  init        - Create an empty data file
  cars        - List cars with mileage summary
  add-car     - Add a car
  retire-car  - Mark a car inactive (readings are kept)
  log         - Record an odometer reading
  edit        - Change an existing reading
  delete      - Remove a reading
  check       - Validate a reading without saving it
  history     - View readings
  stats       - Year-to-date and monthly statistics for a car
  chart       - Monthly mileage for the last 6 or 12 months
  export      - Write a JSON backup
  import      - Replace data with a JSON backup
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional

from mileage import (
    Car,
    CarStats,
    Garage,
    MileageError,
    MonthlyMileage,
    Reading,
    ReadingRejected,
    add_reading,
    create_car,
    deactivate_car,
    delete_reading,
    export_data,
    get_end_of_month,
    import_data,
    init_data_file,
    load_garage,
    update_reading,
    UNCHANGED,
)

logger = logging.getLogger("odo")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_miles(miles: Optional[float]) -> str:
    """Format mileage for display."""
    return f"{miles:,.0f}" if miles is not None else "-"


def format_range(min_value: Optional[int], max_value: Optional[int]) -> str:
    """Format a valid reading range hint (e.g. '10,000 - 78,000')."""
    if min_value is None and max_value is None:
        return "any"
    if max_value is None:
        return f">= {format_miles(min_value)}"
    if min_value is None:
        return f"<= {format_miles(max_value)}"
    return f"{format_miles(min_value)} - {format_miles(max_value)}"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def bar(value: int, peak: int, width: int = 30) -> str:
    """Horizontal bar scaled against the largest value."""
    if peak <= 0 or value <= 0:
        return ""
    return "#" * max(1, round(value / peak * width))


def resolve_car(garage: Garage, car_ref: Optional[str]) -> Optional[Car]:
    """Find a car by id or (case-insensitive) name, falling back to the default car."""
    if car_ref is None:
        if garage.settings.default_car_id:
            return garage.get_car(garage.settings.default_car_id)
        active = garage.active_cars
        return active[0] if len(active) == 1 else None
    car = garage.get_car(car_ref)
    if car is not None:
        return car
    for c in garage.cars:
        if c.name.lower() == car_ref.lower():
            return c
    return None


def car_required(garage: Garage, car_ref: Optional[str]) -> Optional[Car]:
    car = resolve_car(garage, car_ref)
    if car is None:
        if car_ref:
            print(f"Error: Unknown car '{car_ref}'")
        else:
            print("Error: Specify a car with --car (no default car set)")
        print("\nAvailable cars:")
        for c in garage.active_cars:
            print(f"  {c.display_name}  (id: {c.id})")
    return car


# =============================================================================
# Table helpers
# =============================================================================


def make_cars_table(stats: List[CarStats], unit: str) -> List[List[str]]:
    """Convert car stats to table rows."""
    rows = []
    for s in stats:
        latest = "-"
        if s.latest_reading is not None:
            latest = f"{format_miles(s.latest_reading.reading)} {unit} ({s.latest_reading.date.isoformat()})"
        rows.append(
            [
                s.car.display_name,
                s.car.id,
                latest,
                format_miles(s.ytd_mileage),
                format_miles(s.monthly_average),
                str(s.total_readings),
                "" if s.car.is_active else "retired",
            ]
        )
    return rows


def make_history_table(readings: List[Reading], garage: Garage) -> List[List[str]]:
    """Convert readings to table rows."""
    rows = []
    for reading in readings:
        car = garage.get_car(reading.car_id)
        rows.append(
            [
                reading.date.isoformat(),
                car.display_name if car else reading.car_id,
                format_miles(reading.reading),
                truncate(reading.notes),
                reading.id,
            ]
        )
    return rows


def make_chart_table(periods: List[MonthlyMileage]) -> List[List[str]]:
    """Convert monthly periods to table rows with a text bar."""
    peak = max((p.mileage for p in periods), default=0)
    rows = []
    for p in periods:
        rows.append(
            [
                p.month_label,
                format_miles(p.mileage),
                "-" if p.is_gap else format_miles(p.reading),
                bar(p.mileage, peak),
            ]
        )
    return rows


# =============================================================================
# Commands
# =============================================================================


def cmd_init(args):
    """Create an empty data file."""
    init_data_file(args.data_file)
    print(f"Created {args.data_file}")
    return 0


def cmd_cars(args):
    """List cars with mileage summary."""
    garage = load_garage(args.data_file)
    cars = garage.cars if args.all else garage.active_cars
    if not cars:
        print("No cars found.")
        return 0

    unit = garage.settings.unit_label
    stats = [garage.car_stats(c.id) for c in cars]
    headers = ["Car", "Id", "Latest", f"YTD ({unit})", f"Avg/mo ({unit})", "Readings", ""]
    print(tabulate(make_cars_table(stats, unit), headers=headers, tablefmt="simple"))
    print()
    print(f"Total YTD: {format_miles(garage.total_ytd_mileage)} {unit}")
    print(f"This month: {format_miles(garage.current_month_total)} {unit}")
    return 0


def cmd_add_car(args):
    """Add a car."""
    car = Car(
        id=args.id or "",
        name=args.name,
        make=args.make,
        model=args.model,
        year=args.year,
        color=args.color,
        initial_odometer=args.initial_odometer,
        tracking_start_date=args.tracking_start,
    )
    car = create_car(args.data_file, car)
    print(f"Added car {car.display_name} (id: {car.id})")
    return 0


def cmd_retire_car(args):
    """Mark a car inactive."""
    garage = load_garage(args.data_file)
    car = car_required(garage, args.car)
    if car is None:
        return 1
    deactivate_car(args.data_file, car.id)
    print(f"Retired {car.display_name}. Its readings are kept.")
    return 0


def cmd_log(args):
    """Record an odometer reading."""
    garage = load_garage(args.data_file)
    car = car_required(garage, args.car)
    if car is None:
        return 1

    reading_date = args.date or get_end_of_month().isoformat()
    unit = garage.settings.unit_label

    print(f"Adding reading to {args.data_file}:")
    print(f"  Car:     {car.display_name}")
    print(f"  Date:    {reading_date}")
    print(f"  Reading: {format_miles(args.reading)} {unit}")
    if args.notes:
        print(f"  Notes:   {args.notes}")
    print()

    if args.dry_run:
        check = garage.validate_reading(car.id, reading_date, args.reading)
        if not check.is_valid:
            print(f"Error: {check.error}")
            return 1
        print("(dry run - no changes made)")
        return 0

    try:
        add_reading(args.data_file, car.id, reading_date, args.reading, args.notes)
    except ReadingRejected as e:
        print(f"Error: {e}")
        return 1
    print("Reading saved.")
    return 0


def cmd_edit(args):
    """Change an existing reading."""
    notes = UNCHANGED
    if args.clear_notes:
        notes = None
    elif args.notes is not None:
        notes = args.notes

    try:
        reading = update_reading(
            args.data_file, args.reading_id, args.date, args.reading, notes
        )
    except ReadingRejected as e:
        print(f"Error: {e}")
        return 1
    print(f"Updated reading {reading.id}: {format_miles(reading.reading)} on {reading.date.isoformat()}")
    return 0


def cmd_delete(args):
    """Remove a reading."""
    delete_reading(args.data_file, args.reading_id)
    print(f"Deleted reading {args.reading_id}")
    return 0


def cmd_check(args):
    """Validate a reading without saving it and show the allowed range."""
    garage = load_garage(args.data_file)
    car = car_required(garage, args.car)
    if car is None:
        return 1

    check = garage.validate_reading(car.id, args.date, args.reading, exclude_id=args.exclude)
    print(f"Valid range on {args.date}: {format_range(check.min_value, check.max_value)}")
    if not check.is_valid:
        print(f"Error: {check.error}")
        return 1
    print("OK")
    return 0


def cmd_history(args):
    """View readings."""
    garage = load_garage(args.data_file)

    car_id = None
    if args.car:
        car = car_required(garage, args.car)
        if car is None:
            return 1
        car_id = car.id

    readings = garage.readings_for(car_id, reverse=not args.asc)
    if args.since:
        since = date.fromisoformat(args.since)
        readings = [r for r in readings if r.date >= since]

    print(f"Total readings: {len(garage.readings)}")
    if args.car or args.since:
        print(f"Showing: {len(readings)} (filtered)")
    print()

    if not readings:
        print("No readings found.")
        return 0

    headers = ["Date", "Car", "Reading", "Notes", "Id"]
    print(tabulate(make_history_table(readings, garage), headers=headers, tablefmt="simple"))
    return 0


def cmd_stats(args):
    """Year-to-date and monthly statistics for a car."""
    garage = load_garage(args.data_file)
    car = car_required(garage, args.car)
    if car is None:
        return 1

    unit = garage.settings.unit_label
    stats = garage.car_stats(car.id)
    year_stats = garage.year_stats(car.id, args.year)

    print(f"Car: {car.display_name}")
    if stats.latest_reading is not None:
        print(
            f"Latest reading: {format_miles(stats.latest_reading.reading)} {unit} "
            f"({stats.latest_reading.date.isoformat()})"
        )
    print(f"Year {year_stats.year}: {format_miles(year_stats.total_mileage)} {unit} "
          f"over {year_stats.months_tracked} month(s), "
          f"avg {format_miles(year_stats.average_monthly_mileage)} {unit}/month")
    print(f"Year to date: {format_miles(stats.ytd_mileage)} {unit}")
    print(f"This month: {format_miles(stats.current_month_mileage)} {unit}")
    print()

    if year_stats.by_month:
        rows = [
            [m.month_label, format_miles(m.mileage), format_miles(m.reading)]
            for m in year_stats.by_month
        ]
        print(tabulate(rows, headers=["Month", f"Mileage ({unit})", "Reading"], tablefmt="simple"))
    return 0


def cmd_chart(args):
    """Monthly mileage for the last 6 or 12 months."""
    garage = load_garage(args.data_file)
    car = car_required(garage, args.car)
    if car is None:
        return 1

    unit = garage.settings.unit_label
    periods = garage.chart_data(car.id, args.months)
    print(f"Car: {car.display_name} - last {args.months} months")
    print()
    headers = ["Month", f"Mileage ({unit})", "Reading", ""]
    print(tabulate(make_chart_table(periods), headers=headers, tablefmt="simple"))
    return 0


def cmd_export(args):
    """Write a JSON backup."""
    payload = export_data(args.data_file)
    text = json.dumps(payload, indent=2)
    if args.output:
        args.output.write_text(text + "\n")
        print(f"Exported {len(payload['cars'])} cars and {len(payload['readings'])} readings to {args.output}")
    else:
        print(text)
    return 0


def cmd_import(args):
    """Replace data with a JSON backup."""
    with open(args.backup_file) as fp:
        payload = json.load(fp)
    garage = import_data(args.data_file, payload)
    print(f"Imported {len(garage.cars)} cars and {len(garage.readings)} readings")
    return 0


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Odometer reading tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s garage.yaml init
  %(prog)s garage.yaml add-car "Daily" --make Honda --model Civic --year 2019 \\
      --initial-odometer 45000 --tracking-start 2026-01-01
  %(prog)s garage.yaml log 45800 --car Daily --date 2026-01-31
  %(prog)s garage.yaml check 40000 --car Daily --date 2025-06-30
  %(prog)s garage.yaml stats --car Daily --year 2026
  %(prog)s garage.yaml chart --car Daily --months 12
""",
    )
    parser.add_argument("data_file", type=Path, help="Path to YAML data file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Create an empty data file")

    cars_parser = subparsers.add_parser("cars", help="List cars with mileage summary")
    cars_parser.add_argument("--all", action="store_true", help="Include retired cars")

    add_car_parser = subparsers.add_parser("add-car", help="Add a car")
    add_car_parser.add_argument("name", type=str, help="Display name")
    add_car_parser.add_argument("--id", type=str, help="Car id (default: generated)")
    add_car_parser.add_argument("--make", type=str)
    add_car_parser.add_argument("--model", type=str)
    add_car_parser.add_argument("--year", type=int)
    add_car_parser.add_argument("--color", type=str)
    add_car_parser.add_argument(
        "--initial-odometer", type=int, help="Odometer when tracking started"
    )
    add_car_parser.add_argument(
        "--tracking-start", type=str, help="Tracking start date (YYYY-MM-DD)"
    )

    retire_parser = subparsers.add_parser("retire-car", help="Mark a car inactive")
    retire_parser.add_argument("car", type=str, help="Car id or name")

    log_parser = subparsers.add_parser("log", help="Record an odometer reading")
    log_parser.add_argument("reading", type=int, help="Odometer value")
    log_parser.add_argument("--car", type=str, help="Car id or name (default: default car)")
    log_parser.add_argument(
        "--date", type=str, help="Reading date YYYY-MM-DD (default: end of this month)"
    )
    log_parser.add_argument("--notes", type=str, help="Notes about the reading")
    log_parser.add_argument(
        "--dry-run", action="store_true", help="Validate without saving"
    )

    edit_parser = subparsers.add_parser("edit", help="Change an existing reading")
    edit_parser.add_argument("reading_id", type=str)
    edit_parser.add_argument("--date", type=str)
    edit_parser.add_argument("--reading", type=int)
    notes_group = edit_parser.add_mutually_exclusive_group()
    notes_group.add_argument("--notes", type=str)
    notes_group.add_argument("--clear-notes", action="store_true", help="Remove the notes")

    delete_parser = subparsers.add_parser("delete", help="Remove a reading")
    delete_parser.add_argument("reading_id", type=str)

    check_parser = subparsers.add_parser("check", help="Validate a reading without saving")
    check_parser.add_argument("reading", type=int)
    check_parser.add_argument("--car", type=str)
    check_parser.add_argument("--date", type=str, required=True)
    check_parser.add_argument("--exclude", type=str, help="Reading id being edited")

    history_parser = subparsers.add_parser("history", help="View readings")
    history_parser.add_argument("--car", type=str, help="Only this car")
    history_parser.add_argument("--since", type=str, help="Only readings since date (YYYY-MM-DD)")
    history_parser.add_argument("--asc", action="store_true", help="Oldest first")

    stats_parser = subparsers.add_parser("stats", help="Statistics for a car")
    stats_parser.add_argument("--car", type=str)
    stats_parser.add_argument("--year", type=int, help="Year (default: current)")

    chart_parser = subparsers.add_parser("chart", help="Monthly mileage chart")
    chart_parser.add_argument("--car", type=str)
    chart_parser.add_argument("--months", type=int, choices=[6, 12], default=6)

    export_parser = subparsers.add_parser("export", help="Write a JSON backup")
    export_parser.add_argument("--output", "-o", type=Path, help="Output file (default: stdout)")

    import_parser = subparsers.add_parser("import", help="Replace data with a JSON backup")
    import_parser.add_argument("backup_file", type=Path)

    return parser


COMMANDS = {
    "init": cmd_init,
    "cars": cmd_cars,
    "add-car": cmd_add_car,
    "retire-car": cmd_retire_car,
    "log": cmd_log,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "check": cmd_check,
    "history": cmd_history,
    "stats": cmd_stats,
    "chart": cmd_chart,
    "export": cmd_export,
    "import": cmd_import,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Validate data file exists
    if args.command != "init" and not args.data_file.exists():
        print(f"Error: File not found: {args.data_file}")
        return 1

    try:
        return COMMANDS[args.command](args)
    except (MileageError, ValueError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
