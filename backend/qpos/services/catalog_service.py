# Overview: Minimal catalog writes needed to stock the shop floor (seeding, tests).

from __future__ import annotations

from ..models import Product, ProductVariant
from ..validation import NotFoundError, ValidationError
from .inventory_service import StockLedger


def _check_variant_data(variant_data: dict) -> None:
    for field in ("stock_quantity", "reorder_level", "price_adjustment_cents"):
        value = variant_data.get(field)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise ValidationError(f"{field} must be an integer")
    if (variant_data.get("stock_quantity") or 0) < 0:
        raise ValidationError("stock_quantity cannot be negative")
    reorder_level = variant_data.get("reorder_level")
    if reorder_level is not None and reorder_level < 0:
        raise ValidationError("reorder_level cannot be negative")


def create_product(
    session,
    *,
    sku: str,
    name: str,
    base_price_cents: int,
    variants: list[dict],
    image_url: str | None = None,
    description: str | None = None,
) -> Product:
    """
    Create a product with its variants and seed the stock log.

    Each variant dict accepts: size_uk, color, barcode, stock_quantity,
    reorder_level, price_adjustment_cents. One INITIAL log entry is written
    per variant, in the same transaction as the catalog rows.
    """
    if base_price_cents < 0:
        raise ValidationError("base_price_cents cannot be negative")
    if session.query(Product).filter_by(sku=sku).first() is not None:
        raise ValidationError(f"SKU {sku} already exists")
    for variant_data in variants:
        _check_variant_data(variant_data)

    product = Product(
        sku=sku,
        name=name,
        description=description,
        base_price_cents=base_price_cents,
        image_url=image_url,
        is_active=True,
    )

    ledger = StockLedger(session)
    try:
        session.add(product)
        session.flush()

        for variant_data in variants:
            variant = ProductVariant(
                product_id=product.id,
                size_uk=variant_data.get("size_uk"),
                color=variant_data.get("color"),
                barcode=variant_data.get("barcode"),
                stock_quantity=variant_data.get("stock_quantity") or 0,
                reorder_level=variant_data.get("reorder_level", 5),
                price_adjustment_cents=variant_data.get("price_adjustment_cents", 0),
                is_active=True,
            )
            session.add(variant)
            session.flush()
            ledger.record_initial_stock(variant, commit=False)

        session.commit()
    except Exception:
        # Nothing of a half-built product may survive into a later commit
        session.rollback()
        ledger.discard_pending()
        raise

    ledger.send_pending()
    return product


def get_variant_with_product(session, variant_id: int) -> tuple[Product, ProductVariant]:
    variant = session.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError(f"Variant {variant_id} not found")
    product = session.get(Product, variant.product_id)
    if product is None:
        raise NotFoundError(f"Product {variant.product_id} not found")
    return product, variant
