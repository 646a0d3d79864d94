"""Input validation and sanitization applied before any write runs."""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .exceptions import ValidationFailed

ModelT = TypeVar("ModelT", bound=BaseModel)

_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
    ("`", "&#96;"),
)

# FastAPI prefixes locations with where the value came from.
_LOCATION_PREFIXES = {"body", "query", "path"}


def escape_text(value: str) -> str:
    """HTML-escape free text so stored values are safe to render."""
    for raw, escaped in _HTML_ESCAPES:
        value = value.replace(raw, escaped)
    return value


def escaped_max_length(limit: int) -> Callable[[str], str]:
    """Return a validator rejecting values longer than ``limit`` once escaped."""

    def check(value: str) -> str:
        if len(value) > limit:
            raise ValueError(f"must be at most {limit} characters after escaping")
        return value

    return check


def _field_path(loc: Iterable[Any]) -> str:
    parts = [str(part) for part in loc]
    if len(parts) > 1 and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) if parts else "body"


def violations_from_errors(errors: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Normalize pydantic/FastAPI error dicts into ``{field, message, type}`` entries."""
    violations = []
    for error in errors:
        violations.append(
            {
                "field": _field_path(error.get("loc", ())),
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "value_error"),
            }
        )
    return violations


def validate_payload(model: type[ModelT], payload: Any) -> ModelT:
    """Validate ``payload`` against ``model`` reporting every violation at once."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailed(violations_from_errors(exc.errors())) from exc


__all__ = ["escape_text", "escaped_max_length", "validate_payload", "violations_from_errors"]
