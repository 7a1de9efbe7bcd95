from __future__ import annotations

from ..extensions import db
from qpos.time_utils import to_utc_z


class StockLog(db.Model):
    """
    Append-only audit trail of stock quantity changes.

    change_amount is the REQUESTED delta. When a decrement is clamped at zero
    the effective change is smaller; the log still records what was asked for.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "stock_logs"
    __table_args__ = (
        db.Index("ix_stock_logs_variant_timestamp", "variant_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False)

    change_amount = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(16), nullable=False, index=True)  # SALE, RESTOCK, RETURN, DAMAGE, THEFT, CORRECTION, INITIAL
    note = db.Column(db.String(255), nullable=True)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "change_amount": self.change_amount,
            "reason": self.reason,
            "note": self.note,
            "timestamp": to_utc_z(self.timestamp),
        }
