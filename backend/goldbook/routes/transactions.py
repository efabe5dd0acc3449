# Overview: Flask API routes for saving a full transaction (bill, items, exchanges, booking/layaway).

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_staff
from ..services import bill_service, transaction_service
from ..services.bill_service import BillError
from ..services.persistence import PersistenceFailure
from ..services.transaction_service import TransactionDraft
from ..validation import ValidationError


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_staff
def create_transaction_route():
    """
    Save a new transaction.

    Every write happens in one unit of work; on a 500 the "details" name the
    stage (customer, bill, items, exchanges, booking, layaway) that failed.
    """
    data = request.get_json(silent=True)
    try:
        draft = TransactionDraft.from_payload(data)
        result = transaction_service.create_transaction(draft, staff_id=g.staff_id)
        return jsonify(result.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.put("/<int:bill_id>")
@require_staff
def update_transaction_route(bill_id: int):
    data = request.get_json(silent=True)
    try:
        draft = TransactionDraft.from_payload(data)
        result = transaction_service.update_transaction(bill_id, draft, staff_id=g.staff_id)
        return jsonify(result.to_dict()), 200
    except BillError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to update transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/<int:bill_id>/draft")
def load_for_edit_route(bill_id: int):
    """Working draft for editing; the total comes back LOCKED."""
    try:
        return jsonify({"draft": bill_service.load_for_edit(bill_id)}), 200
    except BillError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
