# Overview: Read-side reducers over settled orders (revenue, counts, payment mix).

"""
Every figure here is recomputed from the orders passed in; there are no
stored or incremental aggregates. The reducers accept any iterable of objects
shaped like Order (order_date, total_amount_cents, payments[].payment_method,
payments[].amount_cents) so they can run on ORM rows or plain test doubles.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable

from ..models import Order
from ..money import round_half_up
from qpos.time_utils import day_bounds, start_of_day, start_of_month, to_utc_z, utcnow

PERIOD_TODAY = "today"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"
PERIOD_ALL = "all"

VALID_PERIODS = [PERIOD_TODAY, PERIOD_WEEK, PERIOD_MONTH, PERIOD_ALL]


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def load_orders(session, start: datetime | None = None, end: datetime | None = None) -> list[Order]:
    query = session.query(Order)
    if start is not None:
        query = query.filter(Order.order_date >= start)
    if end is not None:
        query = query.filter(Order.order_date < end)
    return query.order_by(Order.order_date.asc(), Order.id.asc()).all()


def total_revenue(orders: Iterable) -> int:
    return sum(order.total_amount_cents for order in orders)


def revenue_between(orders: Iterable, start: datetime | None, end: datetime | None) -> int:
    """Revenue of orders dated in [start, end); a None bound is open."""
    return total_revenue(
        order for order in orders
        if (start is None or order.order_date >= start) and (end is None or order.order_date < end)
    )


def daily_revenue(orders: Iterable, day: date) -> int:
    start, end = day_bounds(day)
    return revenue_between(orders, start, end)


def order_count(orders: Iterable) -> int:
    return sum(1 for _ in orders)


def average_order_value(orders: Iterable) -> int:
    orders = list(orders)
    if not orders:
        return 0
    return round_half_up(total_revenue(orders), len(orders))


def payment_method_breakdown(orders: Iterable) -> dict[str, int]:
    """
    Amount collected per payment method.

    Sums individual payments, not order totals, so a split order lands in
    several buckets.
    """
    breakdown: dict[str, int] = {}
    for order in orders:
        for payment in order.payments:
            method = payment.payment_method or "unknown"
            breakdown[method] = breakdown.get(method, 0) + payment.amount_cents
    return breakdown


def period_start(period: str, now: datetime) -> datetime | None:
    if period == PERIOD_TODAY:
        return start_of_day(now)
    if period == PERIOD_WEEK:
        return start_of_day(now) - timedelta(days=7)
    if period == PERIOD_MONTH:
        return start_of_month(now)
    if period == PERIOD_ALL:
        return None
    raise ReportError(f"period must be one of {VALID_PERIODS}")


def filter_period(orders: Iterable, period: str, now: datetime | None = None) -> list:
    start = period_start(period, now or utcnow())
    return [order for order in orders if start is None or order.order_date >= start]


def sales_summary(orders: Iterable, period: str = PERIOD_TODAY, now: datetime | None = None) -> dict:
    now = now or utcnow()
    orders = list(orders)
    selected = filter_period(orders, period, now)
    return {
        "period": period,
        "start": to_utc_z(period_start(period, now)),
        "total_revenue_cents": total_revenue(selected),
        "order_count": order_count(selected),
        "average_order_value_cents": average_order_value(selected),
        "payment_methods": payment_method_breakdown(selected),
        "today_revenue_cents": daily_revenue(orders, now.date()),
    }
