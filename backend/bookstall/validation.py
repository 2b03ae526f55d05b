from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Upper bound for any price field: $9,999,999.99
MAX_PRICE_CENTS = 999_999_999

# Integer columns are signed 64-bit
MIN_DB_INT = -(2**63)
MAX_DB_INT = 2**63 - 1

_INT_PATTERN = re.compile(r"-?[0-9]+")
_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


class BookstallError(Exception):
    """Error that reaches the HTTP boundary as a kind + message + details."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": str(self), "details": self.details}


class ValidationError(BookstallError, ValueError):
    """400-level input problem."""


class NotFoundError(BookstallError):
    """A referenced row does not exist."""


class ConflictError(BookstallError):
    """409-level business rule conflict (e.g., duplicate lookup name)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def coerce_int(name: str, value: Any) -> int:
    """Accept ints and digit strings; bools, floats, "12.5" and "1e3" are errors."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, str) and _INT_PATTERN.fullmatch(value.strip()):
        value = int(value.strip())
    if not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    if not MIN_DB_INT <= value <= MAX_DB_INT:
        raise ValidationError(f"{name} is out of range", details={name: str(value)})
    return value


def coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValidationError(f"{name} must be a boolean")


def coerce_text(name: str, value: Any, *, required: bool = False, max_length: int | None = None) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{name} is required")
        return None
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError(f"{name} must be a string")
    text = str(value).strip()
    if not text:
        if required:
            raise ValidationError(f"{name} cannot be blank")
        return None
    if max_length and len(text) > max_length:
        raise ValidationError(f"{name} exceeds max length {max_length}")
    return text


def coerce_price_cents(name: str, value: Any) -> int:
    """Integer cents in [0, MAX_PRICE_CENTS]."""
    if value is None:
        raise ValidationError(f"{name} is required")
    price = coerce_int(name, value)
    if price < 0:
        raise ValidationError(f"{name} must be >= 0")
    if price > MAX_PRICE_CENTS:
        raise ValidationError(f"{name} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")
    return price


def _coerce_column(col, value: Any):
    """Coerce one JSON value to the Python type of a mapped column."""
    if value is None:
        if not col.nullable:
            raise ValidationError(f"{col.key} cannot be null")
        return None

    coltype = col.type
    if isinstance(coltype, Boolean):
        return coerce_bool(col.key, value)
    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)
    if isinstance(coltype, (String, Text)):
        max_length = getattr(coltype, "length", None)
        return coerce_text(col.key, value, required=not col.nullable, max_length=max_length)
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a JSON body into a column patch for `model`.

    Keys outside policy.writable_fields are rejected rather than dropped, so a
    client trying to set a server-assigned column (donor_code) hears about it.
    Types, nullability and String(n) lengths come from the mapped columns.
    partial=False also enforces policy.required_on_create.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted((policy.required_on_create or set()) - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    rejected = sorted(k for k in payload if k not in policy.writable_fields or k not in columns)
    if rejected:
        raise ValidationError(f"Field not allowed: {', '.join(rejected)}", details={"fields": rejected})

    return {key: _coerce_column(columns[key], raw) for key, raw in payload.items()}
