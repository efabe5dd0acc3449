# Overview: Flask API routes for customers; phone lookup and create.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_staff
from ..services import customer_service
from ..services.persistence import PersistenceFailure
from ..validation import ValidationError


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def find_customers_route():
    """Customers matching ?phone= (zero, one or many)."""
    try:
        customers = customer_service.find_customers_by_phone(request.args.get("phone"))
        return jsonify({"customers": [c.to_dict() for c in customers], "count": len(customers)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    customer = customer_service.get_customer(customer_id)
    if not customer:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.post("")
@require_staff
def create_customer_route():
    data = request.get_json(silent=True) or {}
    try:
        customer = customer_service.create_customer(data)
        return jsonify({"customer": customer.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500
