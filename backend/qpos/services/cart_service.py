# Overview: Cart persistence (snapshot in local key-value storage) and catalog-backed cart intents.

"""
One cart per POS session. Between requests it lives as a JSON snapshot under
CART_KEY; totals are never stored, they are recomputed on load.
"""

from __future__ import annotations

from ..cart import Cart, CartLine
from ..models import KeyValue
from .catalog_service import get_variant_with_product

CART_KEY = "pos.cart"


def load_cart(session, tax_rate_bps: int) -> Cart:
    row = session.get(KeyValue, CART_KEY)
    return Cart.from_snapshot(row.value_json if row else None, tax_rate_bps=tax_rate_bps)


def stage_cart_snapshot(session, snapshot: dict) -> None:
    """Write the snapshot into the current transaction without committing."""
    row = session.get(KeyValue, CART_KEY)
    if row is None:
        row = KeyValue(key=CART_KEY)
        session.add(row)
    row.value_json = snapshot


def stage_cleared_cart(session) -> None:
    stage_cart_snapshot(session, Cart().snapshot())


def save_cart(session, cart: Cart) -> None:
    stage_cart_snapshot(session, cart.snapshot())
    session.commit()


def reset_cart(session) -> None:
    row = session.get(KeyValue, CART_KEY)
    if row is not None:
        session.delete(row)
        session.commit()


def add_variant_to_cart(session, cart: Cart, variant_id: int, quantity: int) -> CartLine:
    """Resolve a variant id through the catalog and add it to the cart."""
    product, variant = get_variant_with_product(session, variant_id)
    return cart.add_line(product, variant, quantity)
