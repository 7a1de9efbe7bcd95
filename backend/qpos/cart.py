"""
Cart aggregate.

The cart is an in-memory object: lines, at most one discount and an optional
customer reference. Every money figure it reports is derived from those three
things at call time; nothing is cached, so a total can never go stale.

Totals (all minor units):
    subtotal        = sum(line.unit_price_cents * line.quantity)
    discount_amount = percentage: subtotal * bps / 10000 (half-up)
                      fixed:      min(value, subtotal)
    taxable_amount  = subtotal - discount_amount
    tax_amount      = taxable_amount * tax_rate_bps / 10000 (half-up)
    grand_total     = taxable_amount + tax_amount

Stock is NOT checked when adding lines; it is only touched at settlement.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from .events import cart_changed
from .money import apply_bps, clamp_non_negative
from .services import coupon_service
from .services.coupon_service import DISCOUNT_FIXED, DISCOUNT_PERCENTAGE, Discount
from .validation import NotFoundError, ValidationError, check_positive_quantity


@dataclass
class CartLine:
    variant_id: int
    product_id: int
    product_name: str
    quantity: int
    # Captured when the line is created; later catalog changes do not apply
    unit_price_cents: int
    image_url: str | None = None
    size_uk: float | None = None
    color: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def total_price_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "image_url": self.image_url,
            "size_uk": self.size_uk,
            "color": self.color,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        return cls(
            id=data["id"],
            variant_id=data["variant_id"],
            product_id=data["product_id"],
            product_name=data["product_name"],
            image_url=data.get("image_url"),
            size_uk=data.get("size_uk"),
            color=data.get("color"),
            quantity=data["quantity"],
            unit_price_cents=data["unit_price_cents"],
        )


class Cart:
    def __init__(self, tax_rate_bps: int = 0, coupon_resolver=coupon_service.resolve):
        if tax_rate_bps < 0:
            raise ValidationError("tax_rate_bps cannot be negative")
        self.tax_rate_bps = tax_rate_bps
        self._resolve_coupon = coupon_resolver
        self.items: list[CartLine] = []
        self.discount: Discount | None = None
        self.customer_id: int | None = None

    def __repr__(self) -> str:
        return (
            f"<Cart lines={len(self.items)} subtotal={self.subtotal_cents} "
            f"discount={self.discount!r} customer_id={self.customer_id}>"
        )

    def _changed(self, action: str) -> None:
        cart_changed.send(self, action=action)

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    def get_line(self, line_id: str) -> CartLine:
        for line in self.items:
            if line.id == line_id:
                return line
        raise NotFoundError(f"Cart line {line_id} not found")

    def find_line_for_variant(self, variant_id: int) -> CartLine | None:
        for line in self.items:
            if line.variant_id == variant_id:
                return line
        return None

    def add_line(self, product, variant, quantity: int) -> CartLine:
        """Add a variant, merging into the existing line for the same variant."""
        check_positive_quantity(quantity)
        if variant.product_id != product.id:
            raise ValidationError(
                "Variant does not belong to product",
                details={"variant_id": variant.id, "product_id": product.id},
            )

        line = self.find_line_for_variant(variant.id)
        if line is not None:
            line.quantity += quantity
        else:
            line = CartLine(
                variant_id=variant.id,
                product_id=product.id,
                product_name=product.name,
                image_url=product.image_url,
                size_uk=variant.size_uk,
                color=variant.color,
                quantity=quantity,
                unit_price_cents=product.base_price_cents + (variant.price_adjustment_cents or 0),
            )
            self.items.append(line)

        self._changed("add_line")
        return line

    def set_quantity(self, line_id: str, quantity: int) -> CartLine | None:
        """Set a line's quantity; zero or less removes the line (returns None)."""
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError("quantity must be an integer")
        line = self.get_line(line_id)
        if quantity <= 0:
            self.items.remove(line)
            self._changed("remove_line")
            return None
        line.quantity = quantity
        self._changed("set_quantity")
        return line

    def remove_line(self, line_id: str) -> None:
        line = self.get_line(line_id)
        self.items.remove(line)
        self._changed("remove_line")

    # ------------------------------------------------------------------
    # Discount / coupon (one discount object at a time)
    # ------------------------------------------------------------------

    @property
    def coupon_code(self) -> str | None:
        return self.discount.coupon_code if self.discount else None

    def set_discount(self, kind: str, value: int) -> Discount:
        """Manual discount. Replaces any coupon."""
        self.discount = Discount(kind=kind, value=value)
        self._changed("set_discount")
        return self.discount

    def apply_coupon(self, code) -> bool:
        """Replace the current discount with the coupon's; False if unknown."""
        discount = self._resolve_coupon(code)
        if discount is None:
            return False
        self.discount = discount
        self._changed("apply_coupon")
        return True

    def clear_discount(self) -> None:
        self.discount = None
        self._changed("clear_discount")

    # ------------------------------------------------------------------
    # Customer / lifecycle
    # ------------------------------------------------------------------

    def set_customer(self, customer_id: int | None) -> None:
        self.customer_id = customer_id
        self._changed("set_customer")

    def clear(self) -> None:
        self.items = []
        self.discount = None
        self.customer_id = None
        self._changed("clear")

    @property
    def is_empty(self) -> bool:
        return not self.items

    # ------------------------------------------------------------------
    # Derived totals
    # ------------------------------------------------------------------

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.items)

    @property
    def subtotal_cents(self) -> int:
        return sum(line.total_price_cents for line in self.items)

    @property
    def discount_amount_cents(self) -> int:
        if self.discount is None:
            return 0
        subtotal = self.subtotal_cents
        if self.discount.kind == DISCOUNT_PERCENTAGE:
            amount = apply_bps(subtotal, self.discount.value)
        elif self.discount.kind == DISCOUNT_FIXED:
            amount = self.discount.value
        else:
            amount = 0
        # Never more than the subtotal, never negative
        return clamp_non_negative(min(amount, subtotal))

    @property
    def taxable_amount_cents(self) -> int:
        return self.subtotal_cents - self.discount_amount_cents

    @property
    def tax_amount_cents(self) -> int:
        return apply_bps(self.taxable_amount_cents, self.tax_rate_bps)

    @property
    def grand_total_cents(self) -> int:
        return self.taxable_amount_cents + self.tax_amount_cents

    def totals(self) -> dict:
        subtotal = self.subtotal_cents
        discount_amount = self.discount_amount_cents
        taxable = subtotal - discount_amount
        tax = apply_bps(taxable, self.tax_rate_bps)
        return {
            "total_items": self.total_items,
            "subtotal_cents": subtotal,
            "discount_amount_cents": discount_amount,
            "taxable_amount_cents": taxable,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_amount_cents": tax,
            "grand_total_cents": taxable + tax,
        }

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "items": [line.to_dict() for line in self.items],
            "discount": self.discount.to_dict() if self.discount else None,
            "coupon_code": self.coupon_code,
            "customer_id": self.customer_id,
            "totals": self.totals(),
        }

    def snapshot(self) -> dict:
        """Persistable state only (totals are recomputed on load)."""
        return {
            "items": [line.to_dict() for line in self.items],
            "discount": self.discount.to_dict() if self.discount else None,
            "customer_id": self.customer_id,
        }

    @classmethod
    def from_snapshot(cls, data: dict | None, tax_rate_bps: int = 0) -> "Cart":
        cart = cls(tax_rate_bps=tax_rate_bps)
        if not data:
            return cart
        cart.items = [CartLine.from_dict(item) for item in data.get("items", [])]
        cart.discount = Discount.from_dict(data.get("discount"))
        cart.customer_id = data.get("customer_id")
        return cart
