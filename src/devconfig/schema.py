"""JSON Schema validation for the packages field.

Wraps jsonschema Draft7 validation and reports the first problem as a
PackagesShapeError so a malformed config fails before any package is loaded.
"""

from __future__ import annotations

from typing import Any, Dict

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from .errors import PackagesShapeError

_STRING_LIST: Dict[str, Any] = {"type": "array", "items": {"type": "string"}}

PACKAGE_RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "version": {"type": "string"},
        "platforms": _STRING_LIST,
        "excluded_platforms": _STRING_LIST,
        "outputs": _STRING_LIST,
        "allow_insecure": _STRING_LIST,
        "patch": {"type": "string", "enum": ["auto", "always", "never"]},
        "disable_plugin": {"type": "boolean"},
    },
}

PACKAGES_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "oneOf": [
        _STRING_LIST,
        {
            "type": "object",
            "additionalProperties": {
                "oneOf": [{"type": "string"}, PACKAGE_RECORD_SCHEMA],
            },
        },
    ],
}

_VALIDATOR = Draft7Validator(PACKAGES_SCHEMA)


def validate_packages(data: Any) -> None:
    """Validate a raw packages field strictly and raise on the first error."""
    error = best_match(_VALIDATOR.iter_errors(data))
    if error is not None:
        path = "/".join(str(p) for p in error.absolute_path)
        raise PackagesShapeError(f"Invalid packages field at '{path}': {error.message}")
