# Overview: Flask API routes for daily metal rates; board, publish and resolve.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_staff
from ..services import rate_service
from ..services.persistence import PersistenceFailure
from ..validation import ValidationError, parse_paise, rupees_to_paise
from goldbook.time_utils import parse_iso_date, today, to_iso_date


rates_bp = Blueprint("rates", __name__, url_prefix="/api/rates")


def _date_arg(value):
    try:
        return parse_iso_date(value) or today()
    except ValueError:
        raise ValidationError("date must be a YYYY-MM-DD date")


@rates_bp.get("")
def rate_board_route():
    """Every metal type resolved for ?date= (default today)."""
    try:
        on_date = _date_arg(request.args.get("date"))
        board = rate_service.rates_for_date(on_date)
        return jsonify({
            "date": to_iso_date(on_date),
            "rates": {metal: resolution.to_dict() for metal, resolution in board.items()},
        }), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@rates_bp.put("/<metal_type>")
@require_staff
def publish_rate_route(metal_type: str):
    """
    Publish a rate per gram.

    Body: {"rate_paise": 600000} or {"rate_rupees": "6000.00"}, optional "date".
    """
    data = request.get_json(silent=True) or {}
    try:
        if data.get("rate_rupees") is not None:
            rate_paise = rupees_to_paise(data["rate_rupees"], "rate_rupees")
        else:
            rate_paise = parse_paise(data.get("rate_paise"), "rate_paise", allow_zero=False)
        on_date = _date_arg(data.get("date"))
        row = rate_service.publish_rate(metal_type, rate_paise, on_date, staff_id=g.staff_id)
        return jsonify({"rate": row.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to publish metal rate")
        return jsonify({"error": "Internal server error"}), 500


@rates_bp.get("/<metal_type>/resolve")
def resolve_rate_route(metal_type: str):
    try:
        on_date = _date_arg(request.args.get("date"))
        manual = parse_paise(request.args.get("manual_rate_paise"), "manual_rate_paise", required=False)
        resolution = rate_service.resolve_rate(metal_type, on_date, manual)
        return jsonify({"resolution": resolution.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
