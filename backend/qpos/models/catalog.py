from __future__ import annotations

from ..extensions import db
from qpos.time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog product (shoe/apparel style: one product, many size/colour variants).

    Owned by the catalog collaborator. The checkout core only reads
    name, image and base price from it.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in minor units
    base_price_cents = db.Column(db.Integer, nullable=False)
    image_url = db.Column(db.String(512), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    variants = db.relationship(
        "ProductVariant",
        backref="product",
        lazy=True,
        order_by="ProductVariant.id",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self, include_variants: bool = False) -> dict:
        data = {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "base_price_cents": self.base_price_cents,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_variants:
            data["variants"] = [v.to_dict() for v in self.variants]
        return data


class ProductVariant(db.Model):
    """
    Sellable unit of a product.

    stock_quantity is a mutable counter (never negative); every change to it
    goes through StockLedger.adjust so the stock_logs table explains it.
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_variants_stock_non_negative"),
        db.Index("ix_variants_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    size_uk = db.Column(db.Float, nullable=True)
    color = db.Column(db.String(64), nullable=True)
    barcode = db.Column(db.String(64), nullable=True, unique=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=5)

    # Added to Product.base_price_cents (may be negative)
    price_adjustment_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def unit_price_cents(self) -> int:
        return self.product.base_price_cents + (self.price_adjustment_cents or 0)

    def __repr__(self) -> str:
        return (
            f"<ProductVariant id={self.id} product_id={self.product_id} "
            f"size_uk={self.size_uk} color={self.color!r} stock={self.stock_quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "size_uk": self.size_uk,
            "color": self.color,
            "barcode": self.barcode,
            "stock_quantity": self.stock_quantity,
            "reorder_level": self.reorder_level,
            "price_adjustment_cents": self.price_adjustment_cents,
            "is_active": self.is_active,
            "version_id": self.version_id,
        }
