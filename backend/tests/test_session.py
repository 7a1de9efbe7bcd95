import pytest

from qpos.models import KeyValue
from qpos.services.cart_service import CART_KEY, reset_cart
from qpos.session import PosSession
from qpos.validation import NotFoundError, ValidationError


class TestPosSession:
    def test_cart_survives_between_sessions(self, db_session, variant):
        pos = PosSession.open(db_session)
        line = pos.add_variant(variant.id, 2)
        pos.cart.apply_coupon("SAVE10")
        pos.save()

        reopened = PosSession.open(db_session)
        assert reopened.cart.items[0].id == line.id
        assert reopened.cart.items[0].quantity == 2
        assert reopened.cart.coupon_code == "SAVE10"
        assert reopened.cart.grand_total_cents == 424800

    def test_unknown_variant(self, db_session, product):
        pos = PosSession.open(db_session)
        with pytest.raises(NotFoundError):
            pos.add_variant(999999, 1)

    def test_no_stock_check_when_adding(self, db_session, scarce_variant):
        pos = PosSession.open(db_session)
        line = pos.add_variant(scarce_variant.id, 50)
        assert line.quantity == 50

    def test_attach_customer(self, db_session, customer):
        pos = PosSession.open(db_session)
        pos.attach_customer(customer.id)
        assert pos.cart.customer_id == customer.id

        pos.attach_customer(None)
        assert pos.cart.customer_id is None

    def test_attach_unknown_customer(self, db_session):
        pos = PosSession.open(db_session)
        with pytest.raises(NotFoundError):
            pos.attach_customer(424242)
        assert pos.cart.customer_id is None

    def test_checkout_gets_configured_tolerance(self, db_session):
        pos = PosSession.open(db_session)
        checkout = pos.begin_checkout(cashier_id=3)
        assert checkout.tolerance_cents == 100
        assert checkout.cart is pos.cart
        assert checkout.ledger is pos.ledger

    def test_cashier_required(self, db_session):
        with pytest.raises(ValidationError):
            PosSession.open(db_session).begin_checkout(cashier_id=None)

    def test_reset_cart_drops_snapshot(self, db_session, variant):
        pos = PosSession.open(db_session)
        pos.add_variant(variant.id, 1)
        pos.save()
        reset_cart(db_session)

        assert db_session.get(KeyValue, CART_KEY) is None
        assert PosSession.open(db_session).cart.is_empty

    def test_settlement_stores_the_cleared_cart(self, db_session, variant):
        pos = PosSession.open(db_session)
        pos.add_variant(variant.id, 2)
        pos.save()

        checkout = pos.begin_checkout(cashier_id=1)
        checkout.select_method("card")
        checkout.confirm_settlement()

        assert db_session.get(KeyValue, CART_KEY).value_json["items"] == []
        assert PosSession.open(db_session).cart.is_empty
