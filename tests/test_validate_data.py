#!/usr/bin/env python3
"""Tests for validate_data schema validation."""

from mileage.schema import load_schema
from validate_data import validate_data_file


class TestLoadSchema:
    """Tests for load_schema function."""

    def test_returns_dict(self):
        schema = load_schema()
        assert isinstance(schema, dict)

    def test_has_expected_structure(self):
        schema = load_schema()
        assert "cars" in schema["properties"]
        assert "readings" in schema["properties"]


class TestValidateDataFile:
    """Tests for validate_data_file function."""

    def test_valid_minimal_returns_no_errors(self, tmp_path):
        """Valid minimal data file returns empty error list."""
        path = tmp_path / "valid.yaml"
        path.write_text("""
cars:
  - id: car-a
    name: Commuter
readings:
  - id: r1
    carId: car-a
    date: '2026-01-31'
    reading: 45800
""")
        errors = validate_data_file(path, load_schema())
        assert errors == []

    def test_negative_reading_returns_errors(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("""
cars: []
readings:
  - id: r1
    carId: car-a
    date: '2026-01-31'
    reading: -1
""")
        errors = validate_data_file(path, load_schema())
        assert len(errors) >= 1
        assert any("Schema validation" in e for e in errors)

    def test_half_baseline_returns_errors(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("""
cars:
  - id: car-a
    name: Commuter
    trackingStartDate: '2026-01-01'
readings: []
""")
        errors = validate_data_file(path, load_schema())
        assert any("initialOdometer" in e for e in errors)

    def test_invalid_yaml_returns_parse_error(self, tmp_path):
        """Invalid YAML syntax returns YAML parse error."""
        path = tmp_path / "bad.yaml"
        path.write_text("""
cars:
  - id: car-a
    invalid: [unclosed
""")
        errors = validate_data_file(path, load_schema())
        assert len(errors) >= 1
        assert any("YAML" in e for e in errors)

    def test_nonexistent_file_returns_errors(self, tmp_path):
        """Nonexistent file returns error (caught by validate_data_file)."""
        errors = validate_data_file(tmp_path / "does_not_exist.yaml", load_schema())
        assert len(errors) >= 1
        assert any("Error" in e for e in errors)
