from __future__ import annotations
import math
import re

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .feed_schedule import PLATEAU_DAY


# Letters, digits and spaces only
NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s]+$")

MAX_INITIAL_AGE = PLATEAU_DAY


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(ValueError):
    """404-level: referenced record is missing or not owned by the caller."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate farmer name)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # bool is a subclass of int
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_number(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{key} must be a number")
    else:
        raise ValidationError(f"{key} must be a number")
    # float() accepts "inf" and "nan"
    if not math.isfinite(number):
        raise ValidationError(f"{key} must be a finite number")
    return number


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def require_int(payload: dict, key: str, *, minimum: int | None = None, required: bool = True) -> int | None:
    """Pull an integer field that has no model column behind it (e.g. 'amount')."""
    if key not in payload or payload[key] is None:
        if required:
            raise ValidationError(f"Missing required fields: {key}")
        return None
    value = _coerce_int(key, payload[key])
    if minimum is not None and value < minimum:
        raise ValidationError(f"{key} must be at least {minimum}")
    return value


def require_number(payload: dict, key: str, *, minimum: float | None = None) -> float:
    if key not in payload or payload[key] is None:
        raise ValidationError(f"Missing required fields: {key}")
    value = _coerce_number(key, payload[key])
    if minimum is not None and value < minimum:
        raise ValidationError(f"{key} must be at least {minimum:g}")
    return value


def normalize_name(name: str | None) -> str:
    """Farmer / cycle names: trimmed, letters, digits and spaces, lower case."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("name is required")
    if not NAME_PATTERN.match(cleaned):
        raise ValidationError("name may only contain English letters, numbers and spaces")
    return cleaned.lower()


def enforce_rules_cycle_create(patch: dict) -> None:
    doc = patch.get("doc")
    if doc is None or doc < 1:
        raise ValidationError("doc must be at least 1")

    age = patch.get("age", 1)
    if age is None or age < 1:
        raise ValidationError("age must be at least 1")
    if age > MAX_INITIAL_AGE:
        raise ValidationError(f"age cannot exceed {MAX_INITIAL_AGE}")


def validate_search(value: str | None) -> str | None:
    if not value:
        return None
    value = value.strip()
    if value and not NAME_PATTERN.match(value):
        raise ValidationError("search may only contain English letters and numbers")
    return value or None


def error_status(exc: ValueError) -> int:
    """HTTP status for a domain error raised by the service layer."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    return 400
