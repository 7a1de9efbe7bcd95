"""
Settlement end to end against a real (in-memory) database.

Scenario used throughout: two pairs at 2000.00, SAVE10, 18% tax
-> subtotal 4000.00, discount 400.00, taxable 3600.00, tax 648.00, total 4248.00.
"""

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from qpos.cart import Cart
from qpos.events import order_committed, stock_adjusted
from qpos.models import Customer, Order, Payment, ProductVariant, StockLog
from qpos.services import customer_service
from qpos.services.checkout_service import (
    METHOD_CARD,
    METHOD_CASH,
    METHOD_UPI,
    MODE_SPLIT,
    STATE_ALLOCATING_SPLIT,
    STATE_METHOD_SELECTED,
    STATE_NO_METHOD_SELECTED,
    STATE_SETTLED,
    STATE_SPLIT_COMPLETE,
    STATE_TENDER_ENTERED,
    Checkout,
    SettlementError,
)
from qpos.services.inventory_service import REASON_SALE
from qpos.validation import NotFoundError, ValidationError


@pytest.fixture
def sale_cart(product, variant):
    cart = Cart(tax_rate_bps=1800)
    cart.add_line(product, variant, 2)
    cart.apply_coupon("SAVE10")
    return cart


@pytest.fixture
def flat_cart(product, variant):
    """One pair, no tax: total exactly 2000.00."""
    cart = Cart(tax_rate_bps=0)
    cart.add_line(product, variant, 1)
    return cart


def checkout_for(cart, db_session, **kwargs):
    return Checkout(cart, session=db_session, cashier_id=1, **kwargs)


class TestCashSettlement:
    def test_end_to_end(self, db_session, sale_cart, variant):
        variant_id = variant.id
        checkout = checkout_for(sale_cart, db_session)
        assert checkout.state == STATE_NO_METHOD_SELECTED

        checkout.select_method(METHOD_CASH)
        assert checkout.state == STATE_METHOD_SELECTED
        assert checkout.enter_tender(424800) == 0
        assert checkout.state == STATE_TENDER_ENTERED

        result = checkout.confirm_settlement()

        assert result.order_number == "ORD-000001"
        assert result.total_amount_cents == 424800
        assert result.change_cents == 0
        assert result.loyalty_updated is False
        assert checkout.state == STATE_SETTLED

        assert db_session.get(ProductVariant, variant_id).stock_quantity == 8
        sale_logs = db_session.query(StockLog).filter_by(variant_id=variant_id, reason=REASON_SALE).all()
        assert [log.change_amount for log in sale_logs] == [-2]
        assert sale_logs[0].note == "Order ORD-000001"

        order = db_session.query(Order).one()
        assert order.subtotal_cents == 400000
        assert order.discount_amount_cents == 40000
        assert order.coupon_code == "SAVE10"
        assert order.tax_amount_cents == 64800
        assert [(p.payment_method, p.amount_cents) for p in order.payments] == [("cash", 424800)]
        assert [(i.quantity, i.unit_price_cents, i.total_price_cents) for i in order.items] == [(2, 200000, 400000)]

        assert sale_cart.is_empty
        assert sale_cart.discount is None

    def test_change_due(self, db_session, sale_cart):
        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CASH)
        assert checkout.enter_tender(500000) == 75200

        result = checkout.confirm_settlement()
        assert result.change_cents == 75200
        order = db_session.get(Order, result.order_id)
        assert order.amount_tendered_cents == 500000
        assert order.change_cents == 75200
        assert order.payments[0].amount_cents == 424800

    def test_short_tender_within_tolerance(self, db_session, sale_cart):
        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CASH)
        checkout.enter_tender(424700)
        assert checkout.remaining_due_cents == 100
        assert checkout.can_settle()

    def test_short_tender_rejected_without_mutation(self, db_session, sale_cart, variant):
        variant_id = variant.id
        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CASH)
        checkout.enter_tender(424000)

        assert not checkout.can_settle()
        with pytest.raises(ValidationError) as exc:
            checkout.confirm_settlement()

        assert exc.value.details["remaining_cents"] == 800
        assert db_session.query(Order).count() == 0
        assert db_session.get(ProductVariant, variant_id).stock_quantity == 10
        assert len(sale_cart.items) == 1

    def test_tender_required(self, db_session, sale_cart):
        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CASH)
        with pytest.raises(ValidationError):
            checkout.confirm_settlement()

    def test_tender_only_for_cash(self, db_session, sale_cart):
        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CARD)
        with pytest.raises(ValidationError):
            checkout.enter_tender(100)

    def test_totals_read_live_from_cart(self, db_session, sale_cart):
        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CASH)
        checkout.enter_tender(424800)

        sale_cart.clear_discount()
        assert checkout.grand_total_cents == 472000
        assert not checkout.can_settle()


class TestSplitSettlement:
    def test_entry_gate_and_completion(self, db_session, flat_cart):
        checkout = checkout_for(flat_cart, db_session)
        checkout.select_method(MODE_SPLIT)
        assert checkout.state == STATE_METHOD_SELECTED

        checkout.add_split_payment(METHOD_CASH, 120000)
        assert checkout.state == STATE_ALLOCATING_SPLIT
        assert checkout.remaining_due_cents == 80000
        assert not checkout.can_settle()

        with pytest.raises(ValidationError) as exc:
            checkout.add_split_payment(METHOD_CARD, 100000)
        assert exc.value.details["remaining_cents"] == 80000

        checkout.add_split_payment(METHOD_CARD, 80000)
        assert checkout.state == STATE_SPLIT_COMPLETE

        result = checkout.confirm_settlement()
        payments = db_session.query(Payment).filter_by(order_id=result.order_id).order_by(Payment.id).all()
        assert [(p.payment_method, p.amount_cents) for p in payments] == [("cash", 120000), ("card", 80000)]

    def test_within_tolerance_settles(self, db_session, flat_cart):
        checkout = checkout_for(flat_cart, db_session)
        checkout.select_method(MODE_SPLIT)
        checkout.add_split_payment(METHOD_UPI, 199950)
        assert checkout.can_settle()

    def test_remove_entry(self, db_session, flat_cart):
        checkout = checkout_for(flat_cart, db_session)
        checkout.select_method(MODE_SPLIT)
        checkout.add_split_payment(METHOD_CASH, 50000)

        removed = checkout.remove_split_payment(0)
        assert removed.amount_cents == 50000
        assert checkout.allocated_cents == 0
        with pytest.raises(NotFoundError):
            checkout.remove_split_payment(0)

    def test_switching_method_discards_entries(self, db_session, flat_cart):
        checkout = checkout_for(flat_cart, db_session)
        checkout.select_method(MODE_SPLIT)
        checkout.add_split_payment(METHOD_CASH, 50000)
        checkout.select_method(MODE_SPLIT)
        assert checkout.split_payments == ()

    @pytest.mark.parametrize("amount", [0, -100, 1.5])
    def test_rejects_bad_amounts(self, db_session, flat_cart, amount):
        checkout = checkout_for(flat_cart, db_session)
        checkout.select_method(MODE_SPLIT)
        with pytest.raises(ValidationError):
            checkout.add_split_payment(METHOD_CASH, amount)

    def test_entries_require_split_mode(self, db_session, flat_cart):
        checkout = checkout_for(flat_cart, db_session)
        checkout.select_method(METHOD_CASH)
        with pytest.raises(ValidationError):
            checkout.add_split_payment(METHOD_CASH, 100)


class TestSingleMethodSettlement:
    def test_card_pays_exact_total(self, db_session, sale_cart):
        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CARD)
        assert [(p.method, p.amount_cents) for p in checkout.payment_allocation()] == [("card", 424800)]

        result = checkout.confirm_settlement()
        order = db_session.get(Order, result.order_id)
        assert order.amount_tendered_cents is None
        assert [(p.payment_method, p.amount_cents) for p in order.payments] == [("card", 424800)]

    def test_order_numbers_increase(self, db_session, product, variant):
        numbers = []
        for _ in range(2):
            cart = Cart(tax_rate_bps=0)
            cart.add_line(product, variant, 1)
            checkout = checkout_for(cart, db_session)
            checkout.select_method(METHOD_UPI)
            numbers.append(checkout.confirm_settlement().order_number)
        assert numbers == ["ORD-000001", "ORD-000002"]


class TestValidationGates:
    def test_method_required(self, db_session, sale_cart):
        with pytest.raises(ValidationError):
            checkout_for(sale_cart, db_session).confirm_settlement()

    def test_empty_cart(self, db_session):
        checkout = checkout_for(Cart(tax_rate_bps=1800), db_session)
        checkout.select_method(METHOD_CARD)
        with pytest.raises(ValidationError):
            checkout.confirm_settlement()
        assert db_session.query(Order).count() == 0

    def test_unknown_method(self, db_session, sale_cart):
        with pytest.raises(ValidationError):
            checkout_for(sale_cart, db_session).select_method("cheque")

    def test_settled_checkout_is_terminal(self, db_session, sale_cart):
        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CARD)
        checkout.confirm_settlement()

        with pytest.raises(ValidationError):
            checkout.confirm_settlement()
        with pytest.raises(ValidationError):
            checkout.select_method(METHOD_CASH)
        assert db_session.query(Order).count() == 1

    def test_cashier_id_must_be_int(self, db_session, sale_cart):
        with pytest.raises(ValidationError):
            Checkout(sale_cart, session=db_session, cashier_id="1")


class TestStorageFailure:
    def test_rolls_back_and_keeps_cart(self, db_session, sale_cart, variant, monkeypatch):
        variant_id = variant.id

        def broken_build(self, *args, **kwargs):
            raise IntegrityError("INSERT INTO orders", {}, Exception("disk full"))

        monkeypatch.setattr(Checkout, "_build_order", broken_build)

        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CASH)
        checkout.enter_tender(424800)

        with pytest.raises(SettlementError, match="please retry"):
            checkout.confirm_settlement()

        assert db_session.get(ProductVariant, variant_id).stock_quantity == 10
        assert db_session.query(Order).count() == 0
        assert db_session.query(StockLog).filter_by(reason=REASON_SALE).count() == 0
        assert sale_cart.total_items == 2
        assert sale_cart.coupon_code == "SAVE10"
        assert checkout.state == STATE_TENDER_ENTERED

        # Operator retries once storage recovers; the number was given back
        monkeypatch.undo()
        result = checkout.confirm_settlement()
        assert result.order_number == "ORD-000001"
        assert db_session.get(ProductVariant, variant_id).stock_quantity == 8


class TestLoyalty:
    def test_accrual(self, db_session, cheap_product, customer):
        customer_id = customer.id
        cart = Cart(tax_rate_bps=0)
        cart.add_line(cheap_product, cheap_product.variants[0], 1)
        cart.set_customer(customer_id)

        checkout = checkout_for(cart, db_session)
        checkout.select_method(METHOD_CARD)
        result = checkout.confirm_settlement()

        assert result.loyalty_updated is True
        stored = db_session.get(Customer, customer_id)
        assert stored.total_purchases == 1
        assert stored.total_spent_cents == 25500
        assert stored.loyalty_points == 25
        assert stored.last_visit_at is not None
        assert db_session.get(Order, result.order_id).customer_id == customer_id

    def test_failure_keeps_order(self, db_session, cheap_product, customer, monkeypatch):
        customer_id = customer.id

        def broken_visit(*args, **kwargs):
            raise SQLAlchemyError("database is locked")

        monkeypatch.setattr(customer_service, "record_visit", broken_visit)

        cart = Cart(tax_rate_bps=0)
        cart.add_line(cheap_product, cheap_product.variants[0], 1)
        cart.set_customer(customer_id)
        checkout = checkout_for(cart, db_session)
        checkout.select_method(METHOD_CARD)

        result = checkout.confirm_settlement()

        assert result.loyalty_updated is False
        assert db_session.query(Order).count() == 1
        assert db_session.get(Customer, customer_id).loyalty_points == 0
        assert cart.is_empty


def test_order_committed_signal(db_session, sale_cart):
    received = []

    def receiver(sender, order, **extra):
        received.append(order.order_number)

    checkout = checkout_for(sale_cart, db_session)
    checkout.select_method(METHOD_CARD)
    with order_committed.connected_to(receiver, sender=checkout):
        checkout.confirm_settlement()

    assert received == ["ORD-000001"]


class TestStockNotifications:
    def test_sale_entries_announced_after_commit(self, db_session, sale_cart):
        received = []

        def receiver(sender, entry, new_stock, **extra):
            received.append((entry.reason, new_stock))

        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CARD)
        with stock_adjusted.connected_to(receiver):
            checkout.confirm_settlement()

        assert received == [(REASON_SALE, 8)]

    def test_nothing_announced_when_settlement_fails(self, db_session, sale_cart, monkeypatch):
        received = []

        def receiver(sender, **extra):
            received.append(extra)

        def broken_build(self, *args, **kwargs):
            raise IntegrityError("INSERT INTO orders", {}, Exception("disk full"))

        monkeypatch.setattr(Checkout, "_build_order", broken_build)

        checkout = checkout_for(sale_cart, db_session)
        checkout.select_method(METHOD_CARD)
        with stock_adjusted.connected_to(receiver):
            with pytest.raises(SettlementError):
                checkout.confirm_settlement()

        assert received == []

    def test_failing_before_commit_hook_rolls_back(self, db_session, sale_cart, variant):
        variant_id = variant.id

        def broken_hook():
            raise IntegrityError("UPDATE key_value", {}, Exception("disk full"))

        checkout = checkout_for(sale_cart, db_session, before_commit=broken_hook)
        checkout.select_method(METHOD_CARD)
        with pytest.raises(SettlementError):
            checkout.confirm_settlement()

        assert db_session.query(Order).count() == 0
        assert db_session.get(ProductVariant, variant_id).stock_quantity == 10
        assert sale_cart.total_items == 2
