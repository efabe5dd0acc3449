# Overview: Flask API routes for advance bookings; list, detail and status transitions.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_staff
from ..services import booking_service
from ..services.booking_service import BookingError
from ..services.persistence import PersistenceFailure
from ..validation import ValidationError


bookings_bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")


@bookings_bp.get("")
def list_bookings_route():
    try:
        bookings = booking_service.list_bookings(status=request.args.get("status"))
        return jsonify({"bookings": [booking_service.booking_summary(b) for b in bookings]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@bookings_bp.get("/<int:booking_id>")
def get_booking_route(booking_id: int):
    try:
        booking = booking_service.get_booking(booking_id)
        return jsonify({"booking": booking_service.booking_summary(booking)}), 200
    except BookingError as e:
        return jsonify({"error": str(e), "details": e.details}), 404


@bookings_bp.post("/<int:booking_id>/status")
@require_staff
def set_booking_status_route(booking_id: int):
    """Body: {"status": "fulfilled" | "cancelled"}. Only active bookings move."""
    data = request.get_json(silent=True) or {}
    try:
        booking_service.get_booking(booking_id)
    except BookingError as e:
        return jsonify({"error": str(e), "details": e.details}), 404

    try:
        booking = booking_service.set_booking_status(booking_id, (data.get("status") or "").strip().lower())
        return jsonify({"booking": booking_service.booking_summary(booking)}), 200
    except (BookingError, ValidationError) as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to change booking status")
        return jsonify({"error": "Internal server error"}), 500
