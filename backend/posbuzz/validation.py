"""
Request-body validation.

JSON payloads are checked against the mapped columns of a model: keys must
be on the policy allowlist, NULL is only accepted where the column is
nullable, strings are trimmed and length-checked against String(n), and
integers are strict (no floats, bools or "1e3").
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String


# Largest product price: $9,999,999.99
MAX_PRICE_CENTS = 999_999_999

# Largest stock level a single product may hold
MAX_STOCK_QUANTITY = 1_000_000_000

# Largest value a signed 64-bit INTEGER / BIGINT column can store
MAX_BIGINT = 2**63 - 1

_PLAIN_INT_RE = re.compile(r"^[+-]?\d+$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU or email)."""


class NotFoundError(LookupError):
    """404-level lookup miss (unknown or deleted product, unknown sale)."""


def is_row_id(value: int) -> bool:
    """True if value could be a stored primary key."""
    return 1 <= value <= MAX_BIGINT


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which columns a client may write, and which a create must supply."""
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()


def coerce_int(value: Any, field: str) -> int:
    """JSON ints and plain digit strings pass; bools, floats and anything else fail."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and _PLAIN_INT_RE.match(value.strip()):
        return int(value.strip())
    raise ValidationError(f"{field} must be an integer")


def _clean_string(col, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError(f"{col.key} must be a string")
    text = str(value).strip()
    if not text and not col.nullable:
        raise ValidationError(f"{col.key} cannot be blank")
    if col.type.length and len(text) > col.type.length:
        raise ValidationError(f"{col.key} exceeds max length {col.type.length}")
    return text


def _clean_value(col, value: Any):
    if value is None:
        if not col.nullable:
            raise ValidationError(f"{col.key} cannot be null")
        return None
    if isinstance(col.type, Boolean):
        if not isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a boolean")
        return value
    if isinstance(col.type, Integer):
        return coerce_int(value, col.key)
    # Text is a String subclass with no length
    if isinstance(col.type, String):
        return _clean_string(col, value)
    return value


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Return a cleaned patch holding only the keys the client sent.

    partial=False enforces policy.required_on_create (POST);
    partial=True validates just the provided keys (PUT/PATCH).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    not_allowed = sorted(set(payload) - policy.writable_fields)
    if not_allowed:
        raise ValidationError(f"Field not allowed: {', '.join(not_allowed)}")

    if not partial:
        missing = sorted(policy.required_on_create - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    return {key: _clean_value(columns[key], value) for key, value in payload.items()}


_PRODUCT_CEILINGS = {
    "price_cents": MAX_PRICE_CENTS,
    "stock_quantity": MAX_STOCK_QUANTITY,
}


def enforce_rules_product(patch: dict) -> None:
    """Range rules the column types cannot express."""
    for field, ceiling in _PRODUCT_CEILINGS.items():
        value = patch.get(field)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{field} must be >= 0")
        if value > ceiling:
            raise ValidationError(f"{field} cannot exceed {ceiling}")
