# Overview: Read access to settled orders plus the administrative day reset.

from __future__ import annotations

from datetime import date, datetime

from flask import current_app

from ..models import Order
from ..validation import NotFoundError
from qpos.time_utils import day_bounds


def get_order(session, order_id: int) -> Order:
    order = session.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def get_order_by_number(session, order_number: str) -> Order:
    order = session.query(Order).filter_by(order_number=order_number).first()
    if order is None:
        raise NotFoundError(f"Order {order_number} not found")
    return order


def list_orders(
    session,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    customer_id: int | None = None,
    limit: int | None = None,
) -> list[Order]:
    """Orders newest first; start inclusive, end exclusive."""
    query = session.query(Order)
    if start is not None:
        query = query.filter(Order.order_date >= start)
    if end is not None:
        query = query.filter(Order.order_date < end)
    if customer_id is not None:
        query = query.filter(Order.customer_id == customer_id)
    query = query.order_by(Order.order_date.desc(), Order.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def delete_orders_on(session, day: date) -> int:
    """
    Bulk delete every order dated on `day`.

    Administrative reset only: stock and loyalty effects of those orders are
    NOT reversed. Orders are otherwise never modified.
    """
    start, end = day_bounds(day)
    orders = list_orders(session, start=start, end=end)
    for order in orders:
        session.delete(order)
    session.commit()
    current_app.logger.warning("Deleted %d orders dated %s", len(orders), day.isoformat())
    return len(orders)
