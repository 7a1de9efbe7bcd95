"""
Money helpers.

All amounts are integer minor units (cents / paise). Rates are integer basis
points where 10000 == 100%. Nothing in the checkout path touches floats.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .validation import ValidationError

BPS_DENOMINATOR = 10_000


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half away from zero."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if numerator < 0:
        return -round_half_up(-numerator, denominator)
    return (numerator * 2 + denominator) // (denominator * 2)


def apply_bps(amount_cents: int, bps: int) -> int:
    return round_half_up(amount_cents * bps, BPS_DENOMINATOR)


def clamp_non_negative(value: int) -> int:
    return value if value > 0 else 0


def within_tolerance(a: int, b: int, tolerance_cents: int) -> bool:
    return abs(a - b) <= tolerance_cents


def parse_cents(value) -> int:
    """
    Accept integer cents or a decimal string in major units.

    12 -> 12 (already cents), "12.50" -> 1250, "7" -> 700.
    """
    if isinstance(value, bool):
        raise ValidationError("amount must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip()
        if not s or "e" in s.lower():
            raise ValidationError(f"invalid amount: {value!r}")
        try:
            dec = Decimal(s)
        except InvalidOperation:
            raise ValidationError(f"invalid amount: {value!r}")
        if dec.as_tuple().exponent < -2:
            raise ValidationError("amount cannot have more than two decimals")
        return int(dec * 100)
    raise ValidationError("amount must be integer cents or a decimal string")


def format_cents(cents: int, symbol: str = "₹") -> str:
    sign = "-" if cents < 0 else ""
    major, minor = divmod(abs(cents), 100)
    return f"{sign}{symbol}{major:,}.{minor:02d}"
