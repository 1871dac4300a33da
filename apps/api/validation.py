"""
Field-level violation reporting for request payloads.

Turns pydantic error lists into a flat list of ``{field, message}``
entries. Used by the 400 handler for request bodies and query strings,
and callable directly to check a payload against a schema without
submitting it.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

# Request sections FastAPI prefixes to error locations
_LOCATION_ROOTS = {"body", "query", "path", "header", "cookie"}
_VALUE_ERROR_PREFIX = "Value error, "


@dataclass(frozen=True)
class FieldViolation:
    """A single rule broken by a single field."""

    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


def _field_path(loc: Iterable[Any]) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in _LOCATION_ROOTS:
        parts = parts[1:]
    return ".".join(parts) or "body"


def _clean_message(message: str) -> str:
    if message.startswith(_VALUE_ERROR_PREFIX):
        return message[len(_VALUE_ERROR_PREFIX):]
    return message


def violations_from_errors(errors: Iterable[Mapping[str, Any]]) -> list[FieldViolation]:
    """Convert pydantic/FastAPI error dicts into violations."""
    return [
        FieldViolation(
            field=_field_path(error.get("loc", ())),
            message=_clean_message(str(error.get("msg", "Invalid value"))),
        )
        for error in errors
    ]


def collect_violations(
    schema: type[BaseModel],
    payload: Mapping[str, Any],
) -> list[FieldViolation]:
    """Validate a payload against a schema and list every violation.

    The payload is copied before validation and never modified.

    Returns:
        Empty list when the payload is valid.
    """
    try:
        schema.model_validate(dict(payload))
    except PydanticValidationError as e:
        return violations_from_errors(e.errors())
    return []
