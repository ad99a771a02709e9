"""
Settings validation.

The YAML settings file is checked against schemas/config.schema.json before
any of it is used, then cross-checked for references the schema cannot
express (remote projects naming an undefined connection).
"""

import json
from pathlib import Path

from jsonschema.exceptions import best_match
from jsonschema.validators import validator_for

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"


class ValidationError(Exception):
    """Settings data rejected; path is the dotted location of the bad value."""

    def __init__(self, schema_name: str, message: str, path: str = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


_validators: dict = {}


def _validator(schema_name: str):
    if schema_name in _validators:
        return _validators[schema_name]

    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.is_file():
        raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
    schema = json.loads(schema_path.read_text())
    cls = validator_for(schema)
    cls.check_schema(schema)
    _validators[schema_name] = cls(schema)
    return _validators[schema_name]


def _dotted(parts) -> str:
    return ".".join(str(p) for p in parts) if parts else "(root)"


def validate(data: dict, schema_name: str) -> None:
    """
    Validate data against a named schema, reporting the most relevant error.

    Raises:
        ValidationError: If validation fails
    """
    error = best_match(_validator(schema_name).iter_errors(data))
    if error is not None:
        raise ValidationError(schema_name, error.message, _dotted(error.absolute_path))


def check_connection_refs(data: dict) -> None:
    """Every remote project must name a connection defined in the same file."""
    known = {conn["id"] for conn in data.get("connections", [])}
    for i, project in enumerate(data.get("remote_projects", [])):
        if project["connection_id"] not in known:
            raise ValidationError(
                "config",
                f"Unknown connection '{project['connection_id']}'",
                f"remote_projects.{i}.connection_id",
            )


def validate_settings(data: dict) -> None:
    """Schema plus cross-reference checks for the settings file."""
    validate(data, "config")
    check_connection_refs(data)
