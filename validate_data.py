#!/usr/bin/env python3
"""Validate odometer data files against the schema."""
import argparse
import sys
from pathlib import Path

import yaml

from mileage.schema import load_schema, schema_errors


def validate_data_file(filepath: Path, schema: dict) -> list[str]:
    """Validate a single data file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
        errors.extend(schema_errors(data, schema))
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def main():
    """Validate each data file given on the command line."""
    parser = argparse.ArgumentParser(description="Validate odometer data files")
    parser.add_argument("files", nargs="+", type=Path, help="YAML data files")
    args = parser.parse_args()

    schema = load_schema()
    all_valid = True
    for filepath in args.files:
        errors = validate_data_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
