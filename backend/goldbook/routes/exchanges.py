# Overview: Flask API routes for the standalone old-gold exchange ledger.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_staff
from ..services import exchange_service
from ..services.exchange_service import ExchangeDraft, ExchangeError
from ..services.persistence import PersistenceFailure
from ..services.rate_service import RateSession
from ..validation import ValidationError, parse_int


exchanges_bp = Blueprint("exchanges", __name__, url_prefix="/api/exchanges")


@exchanges_bp.get("")
def list_exchanges_route():
    """
    Query params:
    - standalone=1: only walk-in rows not attached to a bill
    - bill_id: rows attached to one bill
    """
    try:
        rows, total = exchange_service.list_exchanges(
            standalone_only=request.args.get("standalone") in ("1", "true", "yes"),
            bill_id=parse_int(request.args.get("bill_id"), "bill_id", required=False),
            limit=parse_int(request.args.get("limit"), "limit", required=False) or 100,
            offset=parse_int(request.args.get("offset"), "offset", required=False) or 0,
        )
        return jsonify({"exchanges": [row.to_dict() for row in rows], "total": total}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@exchanges_bp.post("")
@require_staff
def create_exchange_route():
    """Walk-in exchange; a missing rate_paise falls back to today's gold rate."""
    data = request.get_json(silent=True)
    try:
        draft = ExchangeDraft.from_payload(data, rates=RateSession())
        row = exchange_service.create_exchange(draft, staff_id=g.staff_id)
        return jsonify({"exchange": row.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to create exchange")
        return jsonify({"error": "Internal server error"}), 500


@exchanges_bp.put("/<int:exchange_id>")
@require_staff
def update_exchange_route(exchange_id: int):
    data = request.get_json(silent=True)
    try:
        draft = ExchangeDraft.from_payload(data, rates=RateSession())
        row = exchange_service.update_exchange(exchange_id, draft)
        return jsonify({"exchange": row.to_dict()}), 200
    except ExchangeError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to update exchange")
        return jsonify({"error": "Internal server error"}), 500


@exchanges_bp.delete("/<int:exchange_id>")
@require_staff
def delete_exchange_route(exchange_id: int):
    try:
        exchange_service.delete_exchange(exchange_id)
        return jsonify({"deleted": exchange_id}), 200
    except ExchangeError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to delete exchange")
        return jsonify({"error": "Internal server error"}), 500


@exchanges_bp.post("/<int:exchange_id>/detach")
@require_staff
def detach_exchange_route(exchange_id: int):
    """Unlink a row from its bill; it stays in the ledger as a walk-in."""
    try:
        row = exchange_service.detach_exchange(exchange_id)
        return jsonify({"exchange": row.to_dict()}), 200
    except ExchangeError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
