# Overview: Stock ledger - signed stock adjustments on variants with an append-only audit log.

"""
QPOS Stock Invariants (authoritative)

- ProductVariant.stock_quantity is never negative.
- Every change to stock_quantity is paired with exactly one StockLog row,
  written in the same DB transaction.
- Decrements larger than the available stock are CLAMPED at zero, not
  rejected. The log keeps the requested change_amount, so
  sum(change_amount) can be lower than the real quantity after an oversell.
- INITIAL is written once per variant, when the variant is created.
- StockLog is append-only (no updates/deletes).
"""

from __future__ import annotations

from flask import current_app

from ..events import stock_adjusted
from ..models import ProductVariant, StockLog
from ..validation import NotFoundError, ValidationError
from qpos.time_utils import utcnow
from .concurrency import lock_for_update


REASON_SALE = "SALE"
REASON_RESTOCK = "RESTOCK"
REASON_RETURN = "RETURN"
REASON_DAMAGE = "DAMAGE"
REASON_THEFT = "THEFT"
REASON_CORRECTION = "CORRECTION"
REASON_INITIAL = "INITIAL"

VALID_REASONS = [
    REASON_SALE,
    REASON_RESTOCK,
    REASON_RETURN,
    REASON_DAMAGE,
    REASON_THEFT,
    REASON_CORRECTION,
    REASON_INITIAL,
]


class StockLedger:
    """
    Applies stock deltas to variants through an explicit DB session.

    adjust(commit=False) only flushes, letting the caller group several
    adjustments (and other writes) into one transaction. Notifications for
    those entries are held until the caller commits and calls send_pending(),
    or dropped with discard_pending() when it rolls back.
    """

    def __init__(self, session):
        self.session = session
        self._pending: list[tuple[StockLog, int]] = []

    def send_pending(self) -> None:
        """Emit stock_adjusted for every entry committed since the last send."""
        pending, self._pending = self._pending, []
        for entry, new_stock in pending:
            stock_adjusted.send(self, entry=entry, new_stock=new_stock)

    def discard_pending(self) -> None:
        self._pending = []

    def _commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.discard_pending()
            raise
        self.send_pending()

    def _load_variant(self, product_id: int, variant_id: int) -> ProductVariant:
        variant = lock_for_update(
            self.session.query(ProductVariant).filter_by(id=variant_id)
        ).first()
        if variant is None or variant.product_id != product_id:
            raise NotFoundError(f"Variant {variant_id} of product {product_id} not found")
        return variant

    def adjust(
        self,
        product_id: int,
        variant_id: int,
        change_amount: int,
        reason: str,
        note: str | None = None,
        *,
        commit: bool = True,
    ) -> StockLog:
        if reason not in VALID_REASONS:
            raise ValidationError(f"Invalid stock reason: {reason}. Must be one of {VALID_REASONS}")
        if isinstance(change_amount, bool) or not isinstance(change_amount, int):
            raise ValidationError("change_amount must be an integer")

        variant = self._load_variant(product_id, variant_id)

        requested = variant.stock_quantity + change_amount
        new_stock = max(0, requested)
        if requested < 0:
            current_app.logger.warning(
                "Stock clamped at zero: variant=%s stock=%s change=%s reason=%s",
                variant_id, variant.stock_quantity, change_amount, reason,
            )

        variant.stock_quantity = new_stock

        entry = StockLog(
            product_id=product_id,
            variant_id=variant_id,
            change_amount=change_amount,
            reason=reason,
            note=note,
            timestamp=utcnow(),
        )
        self.session.add(entry)
        self._pending.append((entry, new_stock))

        if not commit:
            # Caller owns the transaction
            self.session.flush()
            return entry

        self._commit()
        return entry

    def record_initial_stock(self, variant: ProductVariant, note: str | None = "Initial Stock", *, commit: bool = True) -> StockLog:
        """
        Seed the log with a freshly created variant's starting quantity.

        The variant row already holds the quantity; only the log is written.
        """
        already = self.session.query(StockLog).filter_by(
            variant_id=variant.id, reason=REASON_INITIAL
        ).first()
        if already is not None:
            raise ValidationError(f"Variant {variant.id} already has an INITIAL stock entry")

        entry = StockLog(
            product_id=variant.product_id,
            variant_id=variant.id,
            change_amount=variant.stock_quantity,
            reason=REASON_INITIAL,
            note=note,
            timestamp=utcnow(),
        )
        self.session.add(entry)
        self._pending.append((entry, variant.stock_quantity))
        if not commit:
            self.session.flush()
            return entry

        self._commit()
        return entry


def get_stock_history(
    session,
    *,
    variant_id: int | None = None,
    product_id: int | None = None,
    limit: int = 100,
) -> list[StockLog]:
    """Stock log entries, newest first."""
    query = session.query(StockLog)
    if variant_id is not None:
        query = query.filter(StockLog.variant_id == variant_id)
    if product_id is not None:
        query = query.filter(StockLog.product_id == product_id)
    return query.order_by(StockLog.timestamp.desc(), StockLog.id.desc()).limit(limit).all()


def list_low_stock(session) -> list[ProductVariant]:
    """Active variants at or below their reorder level, emptiest first."""
    return (
        session.query(ProductVariant)
        .filter(
            ProductVariant.is_active.is_(True),
            ProductVariant.stock_quantity <= ProductVariant.reorder_level,
        )
        .order_by(ProductVariant.stock_quantity.asc(), ProductVariant.id.asc())
        .all()
    )
