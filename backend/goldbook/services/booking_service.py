# Overview: Service-layer operations for advance bookings.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import AdvanceBooking, Bill
from ..validation import ValidationError, issue
from goldbook.time_utils import today
from .persistence import commit_or_fail
from .valuation import amount_due


class BookingError(Exception):
    """Raised for advance booking errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


BOOKING_ACTIVE = "active"
BOOKING_FULFILLED = "fulfilled"
BOOKING_CANCELLED = "cancelled"
BOOKING_STATUSES = [BOOKING_ACTIVE, BOOKING_FULFILLED, BOOKING_CANCELLED]

# Only active bookings move; fulfilled and cancelled are terminal
ALLOWED_TRANSITIONS = {
    BOOKING_ACTIVE: {BOOKING_FULFILLED, BOOKING_CANCELLED},
    BOOKING_FULFILLED: set(),
    BOOKING_CANCELLED: set(),
}


def advance_issues(advance_paise: int | None, total_paise: int, delivery_date: date | None) -> list[dict]:
    """Checks for 0 < advance <= total and a delivery date."""
    problems = []
    if advance_paise is None or advance_paise <= 0:
        problems.append(issue("advance_paise", "advance amount must be greater than 0"))
    elif advance_paise > total_paise:
        problems.append(issue("advance_paise", "advance amount cannot be greater than total amount"))
    if total_paise <= 0:
        problems.append(issue("total_paise", "total amount must be greater than 0"))
    if delivery_date is None:
        problems.append(issue("delivery_date", "delivery date is required"))
    return problems


def upsert_booking(
    bill: Bill,
    *,
    advance_paise: int,
    total_paise: int,
    delivery_date: date,
    item_description: str | None = None,
    customer_notes: str | None = None,
) -> AdvanceBooking:
    """Create or update the bill's booking without committing."""
    problems = advance_issues(advance_paise, total_paise, delivery_date)
    if problems:
        raise ValidationError(problems[0]["message"], details=problems)

    booking = bill.advance_booking
    if booking is None:
        booking = AdvanceBooking(bill=bill, booking_date=today(), status=BOOKING_ACTIVE)
        db.session.add(booking)

    booking.delivery_date = delivery_date
    booking.advance_paise = advance_paise
    booking.total_paise = total_paise
    booking.item_description = item_description
    booking.customer_notes = customer_notes
    return booking


def get_booking(booking_id: int) -> AdvanceBooking:
    booking = db.session.get(AdvanceBooking, booking_id)
    if not booking:
        raise BookingError("Advance booking not found", details={"booking_id": booking_id})
    return booking


def list_bookings(*, status: str | None = None) -> list[AdvanceBooking]:
    query = db.session.query(AdvanceBooking)
    if status:
        if status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid status: {status}. Must be one of {BOOKING_STATUSES}")
        query = query.filter(AdvanceBooking.status == status)
    return query.order_by(AdvanceBooking.delivery_date, AdvanceBooking.id).all()


def set_booking_status(booking_id: int, status: str) -> AdvanceBooking:
    booking = get_booking(booking_id)
    if status not in BOOKING_STATUSES:
        raise ValidationError(f"Invalid status: {status}. Must be one of {BOOKING_STATUSES}")
    if status == booking.status:
        return booking
    if status not in ALLOWED_TRANSITIONS[booking.status]:
        raise BookingError(
            f"Cannot move booking from {booking.status} to {status}",
            details={"booking_id": booking_id},
        )
    booking.status = status
    commit_or_fail("advance booking", "booking")
    return booking


def booking_summary(booking: AdvanceBooking) -> dict:
    data = booking.to_dict()
    data["amount_due_paise"] = amount_due(booking.total_paise, booking.advance_paise)
    data["bill_no"] = booking.bill.bill_no if booking.bill else None
    return data
