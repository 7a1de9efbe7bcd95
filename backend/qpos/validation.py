from __future__ import annotations

from typing import Any


# Upper bound for any single money amount: 9,999,999.99 in minor units.
# Keeps payloads away from nonsensical values and integer overflow in reports.
MAX_AMOUNT_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem the operator can correct."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(LookupError):
    """Referenced cart line, variant, product, customer or order does not exist."""


def _coerce_int(field: str, value: Any) -> int:
    # bool is a subclass of int; never accept it as a number
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def require_int(payload: dict, field: str) -> int:
    if field not in payload or payload[field] is None:
        raise ValidationError(f"{field} is required")
    return _coerce_int(field, payload[field])


def optional_int(payload: dict, field: str) -> int | None:
    if payload.get(field) is None:
        return None
    return _coerce_int(field, payload[field])


def require_positive_int(payload: dict, field: str) -> int:
    value = require_int(payload, field)
    if value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def require_amount_cents(payload: dict, field: str) -> int:
    value = require_int(payload, field)
    if value < 0:
        raise ValidationError(f"{field} cannot be negative")
    if value > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return value


def require_str(payload: dict, field: str, *, max_length: int | None = None) -> str:
    value = payload.get(field)
    if value is None:
        raise ValidationError(f"{field} is required")
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if not value:
        raise ValidationError(f"{field} cannot be empty")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return value


def optional_str(payload: dict, field: str, *, max_length: int | None = None) -> str | None:
    if payload.get(field) is None:
        return None
    return require_str(payload, field, max_length=max_length)


def check_positive_quantity(quantity: Any, field: str = "quantity") -> int:
    """Quantities entering the cart must be real positive integers."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"{field} must be an integer")
    if quantity <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return quantity
