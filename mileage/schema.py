"""JSON schema for data files and import payloads."""

from pathlib import Path
from typing import Any, List, Optional

import yaml
from jsonschema import validate, ValidationError

SCHEMA_PATH = Path(__file__).parent / "schema.yaml"


def load_schema() -> dict:
    """Load the JSON schema from schema.yaml."""
    with open(SCHEMA_PATH) as f:
        return yaml.safe_load(f)


def definition_schema(name: str, schema: Optional[dict] = None) -> dict:
    """Schema for one entry under $defs (e.g. "car"), keeping its references."""
    schema = schema or load_schema()
    return {
        "$schema": schema["$schema"],
        "$defs": schema["$defs"],
        "$ref": f"#/$defs/{name}",
    }


def schema_errors(data: Any, schema: dict = None) -> List[str]:
    """Validate a parsed document. Returns list of errors."""
    errors = []
    try:
        validate(instance=data, schema=schema or load_schema())
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    return errors
