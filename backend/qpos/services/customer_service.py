# Overview: Customer lookups and loyalty accrual after a settled order.

from __future__ import annotations

from ..models import Customer
from ..validation import NotFoundError, ValidationError
from qpos.time_utils import utcnow

# One point per 10 currency units spent (1000 minor units)
CENTS_PER_LOYALTY_POINT = 1000


def loyalty_points_for(amount_cents: int) -> int:
    """floor(amount / 10) in currency units."""
    if amount_cents <= 0:
        return 0
    return amount_cents // CENTS_PER_LOYALTY_POINT


def get_customer(session, customer_id: int) -> Customer:
    customer = session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def find_by_phone(session, phone: str) -> Customer | None:
    return session.query(Customer).filter_by(phone=phone.strip()).first()


def create_customer(session, *, name: str, phone: str, email: str | None = None) -> Customer:
    if find_by_phone(session, phone) is not None:
        raise ValidationError(f"A customer with phone {phone} already exists")
    customer = Customer(
        name=name,
        phone=phone.strip(),
        email=email,
        loyalty_points=0,
        total_purchases=0,
        total_spent_cents=0,
    )
    session.add(customer)
    session.commit()
    return customer


def record_visit(session, customer_id: int, amount_cents: int) -> Customer:
    """
    Accrue one completed purchase.

    total_purchases += 1, total_spent += amount, loyalty_points += floor(amount/10).
    Never decrements. Commits its own transaction: the order it belongs to is
    already durable by the time this runs.
    """
    if amount_cents < 0:
        raise ValidationError("amount_cents cannot be negative")

    customer = get_customer(session, customer_id)
    customer.total_purchases = (customer.total_purchases or 0) + 1
    customer.total_spent_cents = (customer.total_spent_cents or 0) + amount_cents
    customer.loyalty_points = (customer.loyalty_points or 0) + loyalty_points_for(amount_cents)
    customer.last_visit_at = utcnow()

    session.commit()
    return customer
