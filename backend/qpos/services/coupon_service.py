# Overview: Coupon code resolution and the discount value type shared with the cart.

from __future__ import annotations

from dataclasses import dataclass

from ..validation import ValidationError

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"

VALID_DISCOUNT_KINDS = (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED)

# 100% in basis points
MAX_PERCENTAGE_BPS = 10_000


@dataclass(frozen=True)
class Discount:
    """
    The single discount a cart may carry.

    value is basis points for percentage (1000 == 10%) and minor units for
    fixed. coupon_code is set only when the discount came from a coupon.
    """
    kind: str
    value: int
    coupon_code: str | None = None

    def __post_init__(self):
        if self.kind not in VALID_DISCOUNT_KINDS:
            raise ValidationError(f"Invalid discount kind: {self.kind}. Must be one of {list(VALID_DISCOUNT_KINDS)}")
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError("Discount value must be an integer")
        if self.value < 0:
            raise ValidationError("Discount value cannot be negative")
        if self.kind == DISCOUNT_PERCENTAGE and self.value > MAX_PERCENTAGE_BPS:
            raise ValidationError("Percentage discount cannot exceed 100%")

    def to_dict(self) -> dict:
        return {"kind": self.kind, "value": self.value, "coupon_code": self.coupon_code}

    @classmethod
    def from_dict(cls, data: dict | None) -> "Discount | None":
        if not data:
            return None
        return cls(kind=data["kind"], value=data["value"], coupon_code=data.get("coupon_code"))


# code -> (kind, value). No expiry, usage limits or customer eligibility.
COUPONS: dict[str, tuple[str, int]] = {
    "SAVE10": (DISCOUNT_PERCENTAGE, 1000),
    "LOYALTY20": (DISCOUNT_PERCENTAGE, 2000),
    "WELCOME50": (DISCOUNT_PERCENTAGE, 5000),
    "FLAT500": (DISCOUNT_FIXED, 50_000),
}


def normalize_code(code) -> str | None:
    if not isinstance(code, str):
        return None
    normalized = code.strip().upper()
    return normalized or None


def resolve(code) -> Discount | None:
    """Map a coupon code (any case) to its discount, or None if unknown."""
    normalized = normalize_code(code)
    if normalized is None:
        return None
    terms = COUPONS.get(normalized)
    if terms is None:
        return None
    kind, value = terms
    return Discount(kind=kind, value=value, coupon_code=normalized)


def list_coupons() -> list[dict]:
    return [
        {"code": code, "kind": kind, "value": value}
        for code, (kind, value) in sorted(COUPONS.items())
    ]
