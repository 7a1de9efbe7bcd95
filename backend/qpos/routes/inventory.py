# backend/qpos/routes/inventory.py
"""
Inventory routes: manual stock adjustments, stock history, low stock.

Sales never come through here; settlement adjusts stock itself.
"""
from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services.inventory_service import (
    REASON_INITIAL,
    REASON_SALE,
    StockLedger,
    get_stock_history,
    list_low_stock,
)
from ..validation import (
    NotFoundError,
    ValidationError,
    optional_str,
    require_int,
    require_str,
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

# Reserved for settlement and variant creation
_SYSTEM_REASONS = {REASON_SALE, REASON_INITIAL}


@inventory_bp.post("/adjust")
def adjust_stock_route():
    """
    {"product_id", "variant_id", "change_amount", "reason", "note"?}

    reason: RESTOCK, RETURN, DAMAGE, THEFT or CORRECTION.
    """
    payload = request.get_json(silent=True) or {}
    try:
        product_id = require_int(payload, "product_id")
        variant_id = require_int(payload, "variant_id")
        change_amount = require_int(payload, "change_amount")
        reason = require_str(payload, "reason").upper()
        note = optional_str(payload, "note", max_length=255)

        if reason in _SYSTEM_REASONS:
            raise ValidationError(f"{reason} adjustments cannot be entered manually")

        entry = StockLedger(db.session).adjust(product_id, variant_id, change_amount, reason, note)
        return jsonify({"entry": entry.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/history")
def stock_history_route():
    variant_id = request.args.get("variant_id", type=int)
    product_id = request.args.get("product_id", type=int)
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 1000))

    entries = get_stock_history(db.session, variant_id=variant_id, product_id=product_id, limit=limit)
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200


@inventory_bp.get("/low-stock")
def low_stock_route():
    variants = list_low_stock(db.session)
    return jsonify({"variants": [v.to_dict() for v in variants]}), 200
