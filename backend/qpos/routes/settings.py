from flask import Blueprint, jsonify, request

from ..extensions import db
from ..services import settings_service
from ..validation import ValidationError

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
def get_settings_route():
    return jsonify({"settings": settings_service.get_settings(db.session)}), 200


@settings_bp.patch("")
def update_settings_route():
    payload = request.get_json(silent=True)
    try:
        settings = settings_service.update_settings(db.session, payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"settings": settings}), 200


@settings_bp.post("/reset")
def reset_settings_route():
    return jsonify({"settings": settings_service.reset_settings(db.session)}), 200
