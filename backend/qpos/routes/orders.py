from flask import Blueprint, jsonify, request

from ..extensions import db
from ..services import order_service
from ..validation import NotFoundError, ValidationError
from qpos.time_utils import parse_iso_datetime

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
def list_orders_route():
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    customer_id = request.args.get("customer_id", type=int)
    limit = request.args.get("limit", default=50, type=int)

    orders = order_service.list_orders(
        db.session, start=start, end=end, customer_id=customer_id, limit=max(1, min(limit, 500))
    )
    return jsonify({"orders": [o.to_dict(include_lines=False) for o in orders]}), 200


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(db.session, order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.get("/by-number/<order_number>")
def get_order_by_number_route(order_number: str):
    try:
        order = order_service.get_order_by_number(db.session, order_number)
    except (NotFoundError, ValidationError) as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"order": order.to_dict()}), 200
