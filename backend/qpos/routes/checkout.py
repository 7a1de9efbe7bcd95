# Overview: Flask API routes for checkout preview and settlement.

"""
Checkout API

The client sends the whole payment intent in one request; the route replays
it against a fresh Checkout so every rule (tender gate, split entry limits)
is enforced server-side:

    {
      "cashier_id": 1,
      "method": "cash" | "card" | "upi" | "other" | "split",
      "amount_tendered_cents": 500000,                      # cash
      "payments": [{"method": "cash", "amount_cents": 1}]   # split
    }

The client must disable its confirm button while /confirm is in flight.
"""

from flask import Blueprint, current_app, jsonify, request

from ..session import PosSession
from ..services.checkout_service import (
    METHOD_CASH,
    MODE_SPLIT,
    Checkout,
    SettlementError,
)
from ..validation import (
    NotFoundError,
    ValidationError,
    require_amount_cents,
    require_int,
    require_str,
)

checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


def _build_checkout(pos: PosSession, payload: dict) -> Checkout:
    cashier_id = require_int(payload, "cashier_id")
    method = require_str(payload, "method")

    checkout = pos.begin_checkout(cashier_id)
    checkout.select_method(method)

    if method == METHOD_CASH and payload.get("amount_tendered_cents") is not None:
        checkout.enter_tender(require_amount_cents(payload, "amount_tendered_cents"))

    if method == MODE_SPLIT:
        entries = payload.get("payments") or []
        if not isinstance(entries, list):
            raise ValidationError("payments must be a list")
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValidationError("each payment must be an object")
            checkout.add_split_payment(
                require_str(entry, "method"),
                require_amount_cents(entry, "amount_cents"),
            )
    return checkout


@checkout_bp.post("/preview")
def preview_route():
    """Totals, change and remaining balance for a payment intent. No writes."""
    payload = request.get_json(silent=True) or {}
    try:
        pos = PosSession.open()
        checkout = _build_checkout(pos, payload)
        return jsonify({"checkout": checkout.summary()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@checkout_bp.post("/confirm")
def confirm_route():
    payload = request.get_json(silent=True) or {}
    try:
        pos = PosSession.open()
        checkout = _build_checkout(pos, payload)
        result = checkout.confirm_settlement()
        return jsonify({
            "result": result.to_dict(),
            "order": checkout.order.to_dict(),
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except SettlementError as e:
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Failed to confirm settlement")
        return jsonify({"error": "Internal server error"}), 500
