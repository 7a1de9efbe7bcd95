from datetime import date, datetime
from types import SimpleNamespace

import pytest

from qpos.cart import Cart
from qpos.services import reporting_service
from qpos.services.checkout_service import METHOD_CARD, Checkout
from qpos.services.reporting_service import ReportError

NOW = datetime(2026, 10, 17, 15, 0)


def order(when, total, *payments):
    return SimpleNamespace(
        order_date=when,
        total_amount_cents=total,
        payments=[SimpleNamespace(payment_method=m, amount_cents=a) for m, a in payments],
    )


@pytest.fixture
def orders():
    return [
        order(datetime(2026, 10, 17, 9, 30), 10000, ("cash", 10000)),
        order(datetime(2026, 10, 17, 11, 0), 20000, ("cash", 5000), ("card", 15000)),
        order(datetime(2026, 10, 14, 12, 0), 30000, ("upi", 30000)),
        order(datetime(2026, 9, 27, 18, 0), 40000, ("card", 40000)),
    ]


class TestReducers:
    def test_total_revenue(self, orders):
        assert reporting_service.total_revenue(orders) == 100000

    def test_daily_revenue(self, orders):
        assert reporting_service.daily_revenue(orders, date(2026, 10, 17)) == 30000
        assert reporting_service.daily_revenue(orders, date(2026, 10, 16)) == 0

    def test_revenue_between_is_half_open(self, orders):
        start = datetime(2026, 10, 14, 12, 0)
        end = datetime(2026, 10, 17, 9, 30)
        assert reporting_service.revenue_between(orders, start, end) == 30000

    def test_average_rounds_half_up(self):
        two = [order(NOW, 1), order(NOW, 2)]
        assert reporting_service.average_order_value(two) == 2

    def test_average_of_nothing(self):
        assert reporting_service.average_order_value([]) == 0

    def test_payment_breakdown_sums_payments(self, orders):
        assert reporting_service.payment_method_breakdown(orders) == {
            "cash": 15000,
            "card": 55000,
            "upi": 30000,
        }


class TestSummary:
    @pytest.mark.parametrize("period, revenue, count", [
        ("today", 30000, 2),
        ("week", 60000, 3),
        ("month", 60000, 3),
        ("all", 100000, 4),
    ])
    def test_periods(self, orders, period, revenue, count):
        summary = reporting_service.sales_summary(orders, period, now=NOW)
        assert summary["total_revenue_cents"] == revenue
        assert summary["order_count"] == count
        assert summary["today_revenue_cents"] == 30000

    def test_today_detail(self, orders):
        summary = reporting_service.sales_summary(orders, "today", now=NOW)
        assert summary["start"] == "2026-10-17T00:00:00Z"
        assert summary["average_order_value_cents"] == 15000
        assert summary["payment_methods"] == {"cash": 15000, "card": 15000}

    def test_all_has_no_start(self, orders):
        assert reporting_service.sales_summary(orders, "all", now=NOW)["start"] is None

    def test_unknown_period(self, orders):
        with pytest.raises(ReportError):
            reporting_service.sales_summary(orders, "decade", now=NOW)


def test_settled_orders_feed_reports(db_session, product, variant):
    cart = Cart(tax_rate_bps=0)
    cart.add_line(product, variant, 1)
    checkout = Checkout(cart, session=db_session, cashier_id=1)
    checkout.select_method(METHOD_CARD)
    checkout.confirm_settlement()

    summary = reporting_service.sales_summary(reporting_service.load_orders(db_session), "today")
    assert summary["total_revenue_cents"] == 200000
    assert summary["payment_methods"] == {"card": 200000}
