# Overview: Flask API routes for layaway payments on a bill.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_staff
from ..services import layaway_service
from ..services.bill_service import BILL_TYPE_LAYAWAY, BillError, get_bill
from ..services.layaway_service import LayawayError
from ..services.persistence import PersistenceFailure
from ..validation import ValidationError, parse_paise
from goldbook.time_utils import parse_iso_date


layaways_bp = Blueprint("layaways", __name__, url_prefix="/api/layaways")


@layaways_bp.get("/<int:bill_id>")
def layaway_summary_route(bill_id: int):
    """Payments so far with total paid and remaining balance."""
    try:
        bill = get_bill(bill_id)
    except BillError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    if bill.bill_type != BILL_TYPE_LAYAWAY:
        return jsonify({"error": "Bill is not a layaway bill", "details": {"bill_id": bill_id}}), 400
    return jsonify({"layaway": layaway_service.layaway_summary(bill)}), 200


@layaways_bp.post("/<int:bill_id>/payments")
@require_staff
def record_payment_route(bill_id: int):
    """
    Body: amount_paise (required), payment_method (CASH default),
    reference_number, notes, payment_date (YYYY-MM-DD, default today).
    """
    data = request.get_json(silent=True) or {}
    try:
        try:
            payment_date = parse_iso_date(data.get("payment_date"))
        except ValueError:
            raise ValidationError("payment_date must be a YYYY-MM-DD date")
        payment = layaway_service.record_payment(
            bill_id,
            staff_id=g.staff_id,
            amount_paise=parse_paise(data.get("amount_paise"), "amount_paise", allow_zero=False),
            payment_method=data.get("payment_method"),
            reference_number=data.get("reference_number"),
            notes=data.get("notes"),
            payment_date=payment_date,
        )
        return jsonify({
            "payment": payment.to_dict(),
            "layaway": layaway_service.layaway_summary(payment.bill),
        }), 201
    except LayawayError as e:
        status = 404 if str(e) == "Bill not found" else 400
        return jsonify({"error": str(e), "details": e.details}), status
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to record layaway payment")
        return jsonify({"error": "Internal server error"}), 500
