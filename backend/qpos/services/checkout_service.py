# Overview: Checkout state machine and the settlement commit sequence.

"""
Checkout / Settlement

Drives payment collection for the current cart and turns it into an Order.

STATES:
- NO_METHOD_SELECTED
- METHOD_SELECTED      method chosen; for cash, no tender yet; for split, no entries yet
- TENDER_ENTERED       cash only
- ALLOCATING_SPLIT     split entries exist but do not cover the total yet
- SPLIT_COMPLETE       split entries cover the total (within tolerance)
- SETTLED              terminal, reached once; no edit/void from here

GATES (tolerance = SETTLEMENT_TOLERANCE_CENTS):
- cash:  remaining_due = max(0, total - tendered) must be <= tolerance
- split: |sum(entries) - total| must be <= tolerance; each entry is rejected
         when it exceeds the remaining balance at the time it is added
- card / upi / other: one implicit payment of exactly the total

COMMIT SEQUENCE (confirm_settlement):
1. validate; on failure raise ValidationError and touch nothing
2. SALE stock adjustment for every cart line        \
3. freeze items + payments and persist the Order    | one DB transaction
   (plus the before_commit hook: the cleared cart)  /
4. loyalty accrual for the attached customer (own transaction, best-effort)
5. clear the cart
6. return SettlementResult

Steps 2-3 commit or roll back together. A storage failure there leaves the
cart untouched and raises SettlementError so the operator can retry.
stock_adjusted notifications for the SALE entries go out only after that
commit succeeds.
Totals are read from the cart on every call, never cached.

The orchestrator does not guard against two concurrent confirms on the same
cart; the caller must disable the confirm action while one is in flight.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..events import order_committed
from ..models import Order, OrderItem, Payment
from ..validation import NotFoundError, ValidationError
from qpos.time_utils import utcnow
from . import customer_service
from .concurrency import run_with_retry
from .document_service import next_order_number
from .inventory_service import REASON_SALE, StockLedger


# =============================================================================
# PAYMENT METHODS / MODES (CONSTANTS)
# =============================================================================

METHOD_CASH = "cash"
METHOD_CARD = "card"
METHOD_UPI = "upi"
METHOD_OTHER = "other"
MODE_SPLIT = "split"

PAYMENT_METHODS = [METHOD_CASH, METHOD_CARD, METHOD_UPI, METHOD_OTHER]
CHECKOUT_MODES = PAYMENT_METHODS + [MODE_SPLIT]


# =============================================================================
# STATES (CONSTANTS)
# =============================================================================

STATE_NO_METHOD_SELECTED = "NO_METHOD_SELECTED"
STATE_METHOD_SELECTED = "METHOD_SELECTED"
STATE_TENDER_ENTERED = "TENDER_ENTERED"
STATE_ALLOCATING_SPLIT = "ALLOCATING_SPLIT"
STATE_SPLIT_COMPLETE = "SPLIT_COMPLETE"
STATE_SETTLED = "SETTLED"

SETTLEMENT_FAILED_MESSAGE = "Payment could not be completed, please retry"


class SettlementError(Exception):
    """Unrecoverable storage failure while committing a settlement."""

    def __init__(self, message: str = SETTLEMENT_FAILED_MESSAGE):
        super().__init__(message)


@dataclass(frozen=True)
class PaymentEntry:
    method: str
    amount_cents: int

    def to_dict(self) -> dict:
        return {"method": self.method, "amount_cents": self.amount_cents}


@dataclass(frozen=True)
class SettlementResult:
    order_id: int
    order_number: str
    total_amount_cents: int
    change_cents: int
    loyalty_updated: bool

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "total_amount_cents": self.total_amount_cents,
            "change_cents": self.change_cents,
            "loyalty_updated": self.loyalty_updated,
        }


class Checkout:
    def __init__(
        self,
        cart,
        *,
        session,
        cashier_id: int,
        ledger: StockLedger | None = None,
        tolerance_cents: int = 100,
        before_commit: Callable[[], None] | None = None,
    ):
        if isinstance(cashier_id, bool) or not isinstance(cashier_id, int):
            raise ValidationError("cashier_id must be an integer")
        if tolerance_cents < 0:
            raise ValidationError("tolerance_cents cannot be negative")

        self.cart = cart
        self.session = session
        self.cashier_id = cashier_id
        self.ledger = ledger or StockLedger(session)
        self.tolerance_cents = tolerance_cents
        # Extra writes that must land in the settlement transaction (the cleared cart snapshot)
        self.before_commit = before_commit

        self.mode: str | None = None
        self.tendered_cents: int | None = None
        self._split: list[PaymentEntry] = []
        self.order: Order | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        if self.order is not None:
            return STATE_SETTLED
        if self.mode is None:
            return STATE_NO_METHOD_SELECTED
        if self.mode == METHOD_CASH:
            return STATE_TENDER_ENTERED if self.tendered_cents is not None else STATE_METHOD_SELECTED
        if self.mode == MODE_SPLIT:
            if not self._split:
                return STATE_METHOD_SELECTED
            if self._split_reconciles():
                return STATE_SPLIT_COMPLETE
            return STATE_ALLOCATING_SPLIT
        return STATE_METHOD_SELECTED

    def _ensure_open(self) -> None:
        if self.order is not None:
            raise ValidationError(
                "Checkout already settled",
                details={"order_number": self.order.order_number},
            )

    # ------------------------------------------------------------------
    # Amounts (live from the cart)
    # ------------------------------------------------------------------

    @property
    def grand_total_cents(self) -> int:
        return self.cart.grand_total_cents

    @property
    def allocated_cents(self) -> int:
        return sum(entry.amount_cents for entry in self._split)

    @property
    def split_payments(self) -> tuple[PaymentEntry, ...]:
        return tuple(self._split)

    @property
    def change_cents(self) -> int:
        if self.mode != METHOD_CASH or self.tendered_cents is None:
            return 0
        return max(0, self.tendered_cents - self.grand_total_cents)

    @property
    def remaining_due_cents(self) -> int:
        total = self.grand_total_cents
        if self.mode == METHOD_CASH:
            return max(0, total - (self.tendered_cents or 0))
        if self.mode == MODE_SPLIT:
            return max(0, total - self.allocated_cents)
        if self.mode in PAYMENT_METHODS:
            return 0
        return total

    def _split_reconciles(self) -> bool:
        return abs(self.allocated_cents - self.grand_total_cents) <= self.tolerance_cents

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def select_method(self, mode: str) -> None:
        """Choose cash, card, upi, other or split. Discards tender and split entries."""
        self._ensure_open()
        if mode not in CHECKOUT_MODES:
            raise ValidationError(f"Invalid payment method: {mode}. Must be one of {CHECKOUT_MODES}")
        self.mode = mode
        self.tendered_cents = None
        self._split = []

    def enter_tender(self, amount_cents: int) -> int:
        """Record cash handed over; returns the change due."""
        self._ensure_open()
        if self.mode != METHOD_CASH:
            raise ValidationError("Tender can only be entered for cash payments")
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
            raise ValidationError("amount_tendered_cents must be an integer")
        if amount_cents < 0:
            raise ValidationError("amount_tendered_cents cannot be negative")
        self.tendered_cents = amount_cents
        return self.change_cents

    def add_split_payment(self, method: str, amount_cents: int) -> PaymentEntry:
        self._ensure_open()
        if self.mode != MODE_SPLIT:
            raise ValidationError("Split entries require the split payment method")
        if method not in PAYMENT_METHODS:
            raise ValidationError(f"Invalid payment method: {method}. Must be one of {PAYMENT_METHODS}")
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
            raise ValidationError("amount_cents must be an integer")
        if amount_cents <= 0:
            raise ValidationError("Payment amount must be positive")

        remaining = self.grand_total_cents - self.allocated_cents
        if amount_cents > remaining:
            raise ValidationError(
                "Amount cannot exceed remaining balance",
                details={"amount_cents": amount_cents, "remaining_cents": max(0, remaining)},
            )

        entry = PaymentEntry(method=method, amount_cents=amount_cents)
        self._split.append(entry)
        return entry

    def remove_split_payment(self, index: int) -> PaymentEntry:
        self._ensure_open()
        if self.mode != MODE_SPLIT:
            raise ValidationError("Split entries require the split payment method")
        if not 0 <= index < len(self._split):
            raise NotFoundError(f"Split payment {index} not found")
        return self._split.pop(index)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Raise ValidationError unless the sale may be settled right now."""
        self._ensure_open()
        if self.mode is None:
            raise ValidationError("Select a payment method")
        if self.cart.is_empty:
            raise ValidationError("Cannot settle an empty cart")

        total = self.grand_total_cents
        if self.mode == METHOD_CASH:
            if self.tendered_cents is None:
                raise ValidationError("Enter the amount tendered")
            if self.remaining_due_cents > self.tolerance_cents:
                raise ValidationError(
                    "Amount tendered is less than the total",
                    details={"total_cents": total, "remaining_cents": self.remaining_due_cents},
                )
        elif self.mode == MODE_SPLIT:
            if not self._split_reconciles():
                raise ValidationError(
                    "Split payments do not add up to the total",
                    details={"total_cents": total, "allocated_cents": self.allocated_cents},
                )

    def can_settle(self) -> bool:
        try:
            self.validate()
        except ValidationError:
            return False
        return True

    def payment_allocation(self) -> list[PaymentEntry]:
        if self.mode == MODE_SPLIT:
            return list(self._split)
        if self.mode in PAYMENT_METHODS:
            return [PaymentEntry(method=self.mode, amount_cents=self.grand_total_cents)]
        return []

    def summary(self) -> dict:
        return {
            "state": self.state,
            "method": self.mode,
            "totals": self.cart.totals(),
            "amount_tendered_cents": self.tendered_cents,
            "change_cents": self.change_cents,
            "remaining_due_cents": self.remaining_due_cents,
            "allocated_cents": self.allocated_cents,
            "payments": [entry.to_dict() for entry in self.payment_allocation()],
            "can_settle": self.can_settle(),
        }

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def _build_order(self, order_number: str, totals: dict, allocation: list[PaymentEntry]) -> Order:
        now = utcnow()
        discount = self.cart.discount
        is_cash = self.mode == METHOD_CASH

        order = Order(
            order_number=order_number,
            customer_id=self.cart.customer_id,
            cashier_id=self.cashier_id,
            order_date=now,
            subtotal_cents=totals["subtotal_cents"],
            discount_amount_cents=totals["discount_amount_cents"],
            discount_type=discount.kind if discount else None,
            discount_value=discount.value if discount else None,
            coupon_code=discount.coupon_code if discount else None,
            tax_rate_bps=totals["tax_rate_bps"],
            tax_amount_cents=totals["tax_amount_cents"],
            total_amount_cents=totals["grand_total_cents"],
            amount_tendered_cents=self.tendered_cents if is_cash else None,
            change_cents=self.change_cents if is_cash else None,
            payment_status="paid",
        )
        order.items = [
            OrderItem(
                product_id=line.product_id,
                variant_id=line.variant_id,
                product_name=line.product_name,
                size_uk=line.size_uk,
                color=line.color,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                total_price_cents=line.total_price_cents,
            )
            for line in self.cart.items
        ]
        order.payments = [
            Payment(payment_method=entry.method, amount_cents=entry.amount_cents, payment_date=now)
            for entry in allocation
        ]
        return order

    def _commit_sale(self) -> Order:
        totals = self.cart.totals()
        allocation = self.payment_allocation()

        self.ledger.discard_pending()
        order_number = next_order_number(self.session)
        for line in self.cart.items:
            self.ledger.adjust(
                line.product_id,
                line.variant_id,
                -line.quantity,
                REASON_SALE,
                note=f"Order {order_number}",
                commit=False,
            )

        order = self._build_order(order_number, totals, allocation)
        self.session.add(order)
        if self.before_commit is not None:
            self.before_commit()
        self.session.commit()
        return order

    def confirm_settlement(self) -> SettlementResult:
        self.validate()

        try:
            order = run_with_retry(self._commit_sale, self.session)
        except SQLAlchemyError as exc:
            self.session.rollback()
            self.ledger.discard_pending()
            current_app.logger.exception("Settlement failed; cart left intact for retry")
            raise SettlementError() from exc
        except Exception:
            self.session.rollback()
            self.ledger.discard_pending()
            raise

        self.ledger.send_pending()

        change_cents = self.change_cents
        customer_id = self.cart.customer_id

        loyalty_updated = False
        if customer_id is not None:
            try:
                customer_service.record_visit(self.session, customer_id, order.total_amount_cents)
                loyalty_updated = True
            except (SQLAlchemyError, NotFoundError, ValidationError):
                self.session.rollback()
                current_app.logger.exception(
                    "Loyalty update failed for customer %s on order %s; order stays settled",
                    customer_id, order.order_number,
                )

        self.order = order
        self.cart.clear()

        current_app.logger.info(
            "Order %s settled: total=%s method=%s lines=%d cashier=%s",
            order.order_number, order.total_amount_cents, self.mode, len(order.items), self.cashier_id,
        )
        order_committed.send(self, order=order)

        return SettlementResult(
            order_id=order.id,
            order_number=order.order_number,
            total_amount_cents=order.total_amount_cents,
            change_cents=change_cents,
            loyalty_updated=loyalty_updated,
        )
