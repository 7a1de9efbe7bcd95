# Overview: The POS session context - owns the cart, settings snapshot and DB session.

"""
Nothing in the checkout core reaches for global state. A PosSession is
opened per unit of work (one HTTP request, one CLI command, one test),
rehydrates the cart from storage, hands explicit collaborators to the stock
ledger and the checkout, and writes the cart snapshot back with save().
"""

from __future__ import annotations

import functools

from flask import current_app

from .cart import Cart, CartLine
from .extensions import db
from .services import cart_service, customer_service, settings_service
from .services.checkout_service import Checkout
from .services.inventory_service import StockLedger


class PosSession:
    def __init__(self, session, *, settings: dict, cart: Cart, tolerance_cents: int):
        self.session = session
        self.settings = settings
        self.cart = cart
        self.tolerance_cents = tolerance_cents
        self.ledger = StockLedger(session)

    @classmethod
    def open(cls, session=None) -> "PosSession":
        if session is None:
            session = db.session
        settings = settings_service.get_settings(session)
        cart = cart_service.load_cart(session, tax_rate_bps=settings["tax_rate_bps"])
        return cls(
            session,
            settings=settings,
            cart=cart,
            tolerance_cents=current_app.config["SETTLEMENT_TOLERANCE_CENTS"],
        )

    def save(self) -> None:
        cart_service.save_cart(self.session, self.cart)

    def add_variant(self, variant_id: int, quantity: int) -> CartLine:
        return cart_service.add_variant_to_cart(self.session, self.cart, variant_id, quantity)

    def attach_customer(self, customer_id: int | None) -> None:
        """Weak reference: the customer must exist now, the cart does not own it."""
        if customer_id is not None:
            customer_service.get_customer(self.session, customer_id)
        self.cart.set_customer(customer_id)

    def begin_checkout(self, cashier_id: int) -> Checkout:
        return Checkout(
            self.cart,
            session=self.session,
            cashier_id=cashier_id,
            ledger=self.ledger,
            tolerance_cents=self.tolerance_cents,
            before_commit=functools.partial(cart_service.stage_cleared_cart, self.session),
        )
