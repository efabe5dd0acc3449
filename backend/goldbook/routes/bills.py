# Overview: Flask API routes for bills; list, detail, finalize and delete.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_staff
from ..services import bill_service
from ..services.bill_service import BillError
from ..services.persistence import PersistenceFailure
from ..validation import ValidationError, parse_int


bills_bp = Blueprint("bills", __name__, url_prefix="/api/bills")


@bills_bp.get("")
def list_bills_route():
    """Filters: customer_id, bill_type, status; paging: limit, offset."""
    try:
        bills, total = bill_service.list_bills(
            customer_id=parse_int(request.args.get("customer_id"), "customer_id", required=False),
            bill_type=request.args.get("bill_type"),
            status=request.args.get("status"),
            limit=parse_int(request.args.get("limit"), "limit", required=False) or 100,
            offset=parse_int(request.args.get("offset"), "offset", required=False) or 0,
        )
        return jsonify({"bills": [b.to_dict() for b in bills], "total": total}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@bills_bp.get("/<int:bill_id>")
def get_bill_route(bill_id: int):
    try:
        bill = bill_service.get_bill(bill_id)
        return jsonify(bill_service.bill_detail(bill)), 200
    except BillError as e:
        return jsonify({"error": str(e), "details": e.details}), 404


@bills_bp.post("/<int:bill_id>/finalize")
@require_staff
def finalize_bill_route(bill_id: int):
    try:
        bill = bill_service.finalize_bill(bill_id, staff_id=g.staff_id)
        return jsonify({"bill": bill.to_dict()}), 200
    except BillError as e:
        status = 404 if e.details.get("bill_id") else 400
        return jsonify({"error": str(e), "details": e.details}), status
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to finalize bill")
        return jsonify({"error": "Internal server error"}), 500


@bills_bp.delete("/<int:bill_id>")
@require_staff
def delete_bill_route(bill_id: int):
    """Deletes the bill; its exchange rows are kept as standalone entries."""
    try:
        detached = bill_service.delete_bill(bill_id)
        return jsonify({"deleted": bill_id, "detached_exchange_ids": detached}), 200
    except BillError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to delete bill")
        return jsonify({"error": "Internal server error"}), 500
