# Overview: Flask API routes for the active cart; each request rehydrates, mutates and saves it.

from flask import Blueprint, current_app, jsonify, request

from ..session import PosSession
from ..services.coupon_service import list_coupons
from ..validation import (
    NotFoundError,
    ValidationError,
    optional_int,
    require_int,
    require_positive_int,
    require_str,
)

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _cart_response(pos: PosSession, status: int = 200):
    return jsonify({"cart": pos.cart.to_dict()}), status


@cart_bp.get("")
def get_cart_route():
    pos = PosSession.open()
    return _cart_response(pos)


@cart_bp.delete("")
def clear_cart_route():
    """Explicit operator reset of the whole cart."""
    pos = PosSession.open()
    pos.cart.clear()
    pos.save()
    return _cart_response(pos)


@cart_bp.post("/lines")
def add_line_route():
    payload = request.get_json(silent=True) or {}
    try:
        variant_id = require_int(payload, "variant_id")
        quantity = require_positive_int(payload, "quantity")

        pos = PosSession.open()
        pos.add_variant(variant_id, quantity)
        pos.save()
        return _cart_response(pos, 201)

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to add cart line")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.patch("/lines/<line_id>")
def update_line_route(line_id: str):
    """Set a line's quantity; zero or less removes it."""
    payload = request.get_json(silent=True) or {}
    try:
        quantity = require_int(payload, "quantity")

        pos = PosSession.open()
        pos.cart.set_quantity(line_id, quantity)
        pos.save()
        return _cart_response(pos)

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update cart line")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/lines/<line_id>")
def remove_line_route(line_id: str):
    try:
        pos = PosSession.open()
        pos.cart.remove_line(line_id)
        pos.save()
        return _cart_response(pos)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to remove cart line")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.post("/discount")
def set_discount_route():
    """Manual discount: {"kind": "percentage"|"fixed", "value": bps|cents}."""
    payload = request.get_json(silent=True) or {}
    try:
        kind = require_str(payload, "kind")
        value = require_int(payload, "value")

        pos = PosSession.open()
        pos.cart.set_discount(kind, value)
        pos.save()
        return _cart_response(pos)

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to set cart discount")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/discount")
def clear_discount_route():
    try:
        pos = PosSession.open()
        pos.cart.clear_discount()
        pos.save()
        return _cart_response(pos)
    except Exception:
        current_app.logger.exception("Failed to clear cart discount")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.post("/coupon")
def apply_coupon_route():
    payload = request.get_json(silent=True) or {}
    try:
        code = require_str(payload, "code", max_length=32)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    pos = PosSession.open()
    if not pos.cart.apply_coupon(code):
        return jsonify({"error": "Invalid coupon code", "details": {"code": code}}), 400
    pos.save()
    return _cart_response(pos)


@cart_bp.get("/coupons")
def list_coupons_route():
    return jsonify({"coupons": list_coupons()}), 200


@cart_bp.put("/customer")
def set_customer_route():
    """Attach ({"customer_id": 3}) or detach ({"customer_id": null}) a customer."""
    payload = request.get_json(silent=True) or {}
    try:
        customer_id = optional_int(payload, "customer_id")

        pos = PosSession.open()
        pos.attach_customer(customer_id)
        pos.save()
        return _cart_response(pos)

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to set cart customer")
        return jsonify({"error": "Internal server error"}), 500
