from __future__ import annotations

from ..extensions import db
from qpos.time_utils import to_utc_z


class Order(db.Model):
    """
    Settled sale (the settlement record).

    Written exactly once by Checkout.confirm_settlement and never updated.
    Items and payments are frozen copies, decoupled from the cart that
    produced them and from later catalog price changes.

    All amounts in minor units. Invariant at write time:
        sum(payments.amount_cents) == total_amount_cents  (within tolerance)
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_order_date", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    cashier_id = db.Column(db.Integer, nullable=False, index=True)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    # Discount provenance
    discount_type = db.Column(db.String(16), nullable=True)  # percentage, fixed
    discount_value = db.Column(db.Integer, nullable=True)  # bps for percentage, cents for fixed
    coupon_code = db.Column(db.String(32), nullable=True)

    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tax_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    # Cash tender only
    amount_tendered_cents = db.Column(db.Integer, nullable=True)
    change_cents = db.Column(db.Integer, nullable=True)

    payment_status = db.Column(db.String(16), nullable=False, default="paid")
    notes = db.Column(db.Text, nullable=True)

    items = db.relationship("OrderItem", backref="order", lazy=True, cascade="all, delete-orphan", order_by="OrderItem.id")
    payments = db.relationship("Payment", backref="order", lazy=True, cascade="all, delete-orphan", order_by="Payment.id")
    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "cashier_id": self.cashier_id,
            "order_date": to_utc_z(self.order_date),
            "subtotal_cents": self.subtotal_cents,
            "discount_amount_cents": self.discount_amount_cents,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "coupon_code": self.coupon_code,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_amount_cents": self.tax_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "amount_tendered_cents": self.amount_tendered_cents,
            "change_cents": self.change_cents,
            "payment_status": self.payment_status,
            "notes": self.notes,
        }
        if include_lines:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class OrderItem(db.Model):
    """Frozen copy of one cart line."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # Plain references: the item must survive catalog deletes
    product_id = db.Column(db.Integer, nullable=False)
    variant_id = db.Column(db.Integer, nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    size_uk = db.Column(db.Float, nullable=True)
    color = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "product_name": self.product_name,
            "size_uk": self.size_uk,
            "color": self.color,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }


class Payment(db.Model):
    """
    One tender on an order.

    METHODS: cash, card, upi, other. Payments are recorded locally, nothing is
    sent to a gateway. A split order has several rows.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    payment_method = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "payment_method": self.payment_method,
            "amount_cents": self.amount_cents,
            "payment_date": to_utc_z(self.payment_date),
        }
