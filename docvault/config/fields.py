"""Field value rules: validation per type and input normalization.

Validation returns a message (or None) instead of raising so that the
validation engine can collect issues. Write boundaries call ``coerce_field``,
which raises ``FieldValidationError``.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlparse

from ..errors import FieldValidationError
from ..models import FieldDefinition

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
COUNTRY_RE = re.compile(r"^[A-Z]{2}$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})$")
OFFSET_RE = re.compile(r"^[+-]\d+$")

_TRUE = {"true", "yes", "y", "1", "on"}
_FALSE = {"false", "no", "n", "0", "off"}


def element_type(field_type: str) -> str | None:
    """Element type of `array<T>`; None for anything else."""
    if field_type.startswith("array<") and field_type.endswith(">"):
        return field_type[6:-1].strip()
    return None


def is_array_type(field_type: str) -> bool:
    return field_type == "array" or element_type(field_type) is not None


# --- dates -----------------------------------------------------------------


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def normalize_date_input(value: str, today: date | None = None) -> str:
    """Accept YYYY-MM-DD, `today`, `yesterday`, `tomorrow`, or `+N`/`-N` days."""
    trimmed = value.strip()
    if DATE_RE.match(trimmed):
        return trimmed
    base = today or _utc_today()
    lower = trimmed.lower()
    offsets = {"today": 0, "yesterday": -1, "tomorrow": 1}
    if lower in offsets:
        return (base + timedelta(days=offsets[lower])).isoformat()
    if OFFSET_RE.match(lower):
        return (base + timedelta(days=int(lower))).isoformat()
    raise FieldValidationError(f"invalid date input: {value}")


def _is_rfc3339(value: str) -> bool:
    if not DATETIME_RE.match(value):
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def normalize_datetime_input(value: str, today: date | None = None) -> str:
    trimmed = value.strip()
    if _is_rfc3339(trimmed):
        return trimmed
    return f"{normalize_date_input(trimmed, today)}T00:00:00Z"


# --- validation -------------------------------------------------------------


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str) and value.strip():
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def _validate_scalar(field_type: str, value: Any, enum_values: list[str]) -> str | None:
    if field_type == "email":
        if isinstance(value, str) and EMAIL_RE.match(value):
            return None
        return "invalid email format"

    if field_type in ("currency", "country"):
        if not isinstance(value, str):
            return "must be a string"
        if field_type == "currency" and not CURRENCY_RE.match(value):
            return "must be uppercase ISO 4217 code"
        if field_type == "country" and not COUNTRY_RE.match(value):
            return "must be uppercase ISO 3166-1 alpha-2 code"
        if enum_values and value not in enum_values:
            return "must be one of enum_values"
        return None

    if field_type == "date":
        if isinstance(value, str) and DATE_RE.match(value):
            return None
        return "must be YYYY-MM-DD"

    if field_type == "datetime":
        if isinstance(value, str) and _is_rfc3339(value):
            return None
        return "must be RFC3339 string"

    if field_type == "number":
        return None if _is_number(value) else "must be numeric"

    if field_type == "boolean":
        return None if isinstance(value, bool) else "must be true or false"

    if field_type == "url":
        if isinstance(value, str):
            parsed = urlparse(value)
            if parsed.scheme in ("http", "https") and parsed.netloc:
                return None
        return "must be an http(s) URL"

    if field_type == "enum":
        if not isinstance(value, str):
            return "must be a string"
        if not enum_values:
            return "enum_values must be configured"
        if any(v.lower() == value.lower() for v in enum_values):
            return None
        return "must be one of enum_values"

    return None


def validate_field_value(definition: FieldDefinition, value: Any) -> str | None:
    """Check ``value`` against ``definition``. Returns an error message or None."""
    field_type = definition.type
    if is_array_type(field_type):
        if not isinstance(value, list):
            return "must be an array"
        inner = element_type(field_type)
        if inner:
            for item in value:
                error = _validate_scalar(inner, item, definition.enum_values)
                if error:
                    return f"element {item!r}: {error}"
        return None

    error = _validate_scalar(field_type, value, definition.enum_values)
    if error:
        return error

    if definition.pattern and isinstance(value, str) and not re.fullmatch(definition.pattern, value):
        return f"must match pattern {definition.pattern}"
    if field_type == "number":
        number = float(value)
        if definition.min is not None and number < definition.min:
            return f"must be >= {definition.min:g}"
        if definition.max is not None and number > definition.max:
            return f"must be <= {definition.max:g}"
    return None


def validate_field_default(name: str, definition: FieldDefinition) -> str | None:
    """Check a schema default. Date shorthands are allowed for date fields."""
    value = definition.default
    if value is None:
        return None
    field_type = definition.type
    if field_type in ("date", "datetime") and isinstance(value, str):
        try:
            normalize_field_input(field_type, value)
        except FieldValidationError:
            return f"field '{name}' default must be {'YYYY-MM-DD' if field_type == 'date' else 'RFC3339 datetime'} or supported shorthand"
        return None
    if field_type in ("string", "reference") and not isinstance(value, str):
        return f"field '{name}' default must be a string"
    if field_type == "enum" and not definition.enum_values:
        return f"field '{name}' default requires enum_values"
    error = validate_field_value(definition, value)
    if error:
        return f"field '{name}' default {error}"
    return None


# --- coercion at write boundaries --------------------------------------------


def normalize_field_input(field_type: str | None, value: str) -> str:
    if field_type == "date":
        return normalize_date_input(value)
    if field_type == "datetime":
        return normalize_datetime_input(value)
    return value


def _coerce_scalar(field_type: str, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if field_type in ("date", "datetime"):
        return normalize_field_input(field_type, text)
    if field_type in ("currency", "country"):
        return text.upper()
    if field_type == "number":
        if not _is_number(text):
            raise FieldValidationError(f"not a number: {value}")
        number = float(text)
        return int(number) if number.is_integer() and "." not in text else number
    if field_type == "boolean":
        if text.lower() in _TRUE:
            return True
        if text.lower() in _FALSE:
            return False
        raise FieldValidationError(f"not a boolean: {value}")
    return value


def coerce_field(name: str, definition: FieldDefinition | None, value: Any) -> Any:
    """Coerce a user-supplied value to the field's type and validate it.

    Strings are parsed for numbers, booleans, date shorthands, and
    comma/newline separated arrays. Currency and country codes are
    upper-cased.

    Raises:
        FieldValidationError: If the coerced value is still invalid.
    """
    if definition is None:
        return value

    field_type = definition.type
    if is_array_type(field_type):
        if isinstance(value, str):
            value = [part.strip() for part in re.split(r"[,\n]", value) if part.strip()]
        inner = element_type(field_type)
        if inner and isinstance(value, list):
            value = [_coerce_scalar(inner, item) for item in value]
    else:
        value = _coerce_scalar(field_type, value)

    error = validate_field_value(definition, value)
    if error:
        raise FieldValidationError(f"field '{name}': {error}")
    return value


def normalize_default(definition: FieldDefinition) -> Any:
    """Schema default with date shorthands resolved against today."""
    value = definition.default
    if isinstance(value, str) and definition.type in ("date", "datetime"):
        return normalize_field_input(definition.type, value)
    return value
