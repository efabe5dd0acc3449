# Overview: Flask API routes for purchase slips.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_staff
from ..services import purchase_service
from ..services.persistence import PersistenceFailure
from ..services.purchase_service import PurchaseError
from ..validation import ValidationError


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
@require_staff
def create_purchase_route():
    data = request.get_json(silent=True)
    try:
        purchase = purchase_service.create_purchase(data, staff_id=g.staff_id)
        return jsonify({"purchase": purchase.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.get("/<int:purchase_id>")
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
        return jsonify({"purchase": purchase.to_dict()}), 200
    except PurchaseError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
