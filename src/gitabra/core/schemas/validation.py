"""Shared schema validation utilities.

Schemas are JSON Schema documents stored as YAML under
``gitabra/data/schemas/`` and validated with ``jsonschema``.
"""
from __future__ import annotations

from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from gitabra.core.utils.io import read_yaml
from gitabra.data import get_data_path


class SchemaValidationError(ValueError):
    """Raised when schema validation fails."""

    def __init__(self, message: str, errors: List[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


def load_schema(schema_name: str) -> Dict[str, Any]:
    """Load a bundled schema, appending ``.yaml`` if no extension is present.

    Raises:
        FileNotFoundError: If the schema file doesn't exist.
        ValueError: If the schema is not a YAML mapping.
    """
    lowered = schema_name.lower()
    if not (lowered.endswith(".yaml") or lowered.endswith(".yml")):
        schema_name = f"{schema_name}.yaml"

    schema_path = get_data_path("schemas", schema_name)
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_name}")

    schema = read_yaml(schema_path, default=None, raise_on_error=True)
    if not isinstance(schema, dict):
        raise ValueError(f"Schema must be a YAML mapping, got {type(schema).__name__}")
    return schema


def validate_payload(payload: Dict[str, Any], schema_name: str) -> None:
    """Validate ``payload`` against a bundled schema.

    Every violation is collected so one run reports all of them.

    Raises:
        SchemaValidationError: If validation fails.
    """
    schema = load_schema(schema_name)
    validator = Draft202012Validator(schema)
    errors: List[str] = []
    for error in sorted(validator.iter_errors(payload), key=lambda e: list(e.path)):
        location = ".".join(str(p) for p in error.path) or "<root>"
        errors.append(f"{location}: {error.message}")

    if errors:
        raise SchemaValidationError(
            f"Validation failed against schema '{schema_name}': " + "; ".join(errors),
            errors,
        )


__all__ = ["SchemaValidationError", "load_schema", "validate_payload"]
