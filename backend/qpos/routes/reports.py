from flask import Blueprint, jsonify, request

from qpos.extensions import db
from qpos.services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
def sales_summary():
    period = request.args.get("period", reporting_service.PERIOD_TODAY)
    if period not in reporting_service.VALID_PERIODS:
        return jsonify({"error": f"period must be one of {reporting_service.VALID_PERIODS}"}), 400

    orders = reporting_service.load_orders(db.session)
    report = reporting_service.sales_summary(orders, period)
    return jsonify(report), 200
