# Overview: Service-layer operations for layaway payments; append-only ledger per bill.

"""
Layaway Payments

A layaway bill is settled through several recorded partial payments before
delivery. Payments are append-only:

    remaining = bill.grand_total - sum(payment amounts)

A payment may not exceed the remaining balance.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..extensions import db
from ..models import Bill, LayawayTransaction
from ..validation import ValidationError, clean_text
from goldbook.time_utils import today
from .bill_service import BILL_TYPE_LAYAWAY
from .persistence import commit_or_fail


class LayawayError(Exception):
    """Raised for layaway operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


METHOD_CASH = "CASH"
METHOD_CARD = "CARD"
METHOD_UPI = "UPI"
METHOD_BANK_TRANSFER = "BANK_TRANSFER"
METHOD_CHEQUE = "CHEQUE"

PAYMENT_METHODS = [
    METHOD_CASH,
    METHOD_CARD,
    METHOD_UPI,
    METHOD_BANK_TRANSFER,
    METHOD_CHEQUE,
]


def total_paid_paise(bill_id: int) -> int:
    paid = (
        db.session.query(func.coalesce(func.sum(LayawayTransaction.amount_paise), 0))
        .filter(LayawayTransaction.bill_id == bill_id)
        .scalar()
    )
    return int(paid or 0)


def remaining_paise(bill: Bill) -> int:
    return bill.grand_total_paise - total_paid_paise(bill.id)


def normalize_method(method: str | None) -> str:
    if method is None or method == "":
        return METHOD_CASH
    value = method.strip().upper() if isinstance(method, str) else None
    if value not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {PAYMENT_METHODS}")
    return value


def build_payment(
    bill: Bill,
    *,
    amount_paise: int,
    payment_method: str | None = None,
    reference_number: str | None = None,
    notes: str | None = None,
    payment_date: date | None = None,
    staff_id: int | None = None,
    remaining: int | None = None,
) -> LayawayTransaction:
    """Validate and stage a payment without committing."""
    if amount_paise is None or amount_paise <= 0:
        raise ValidationError("Payment amount must be positive")
    if remaining is None:
        remaining = remaining_paise(bill)
    if amount_paise > remaining:
        raise ValidationError(
            "Payment exceeds remaining balance",
            details=[{"index": None, "field": "amount_paise", "message": f"remaining balance is {remaining}"}],
        )

    payment = LayawayTransaction(
        bill_id=bill.id,
        payment_date=payment_date or today(),
        amount_paise=amount_paise,
        payment_method=normalize_method(payment_method),
        reference_number=clean_text(reference_number, max_length=128, field="reference_number"),
        notes=clean_text(notes),
        created_by_staff_id=staff_id,
    )
    db.session.add(payment)
    return payment


def record_payment(bill_id: int, *, staff_id: int | None = None, **fields) -> LayawayTransaction:
    """Append a layaway payment to a bill."""
    bill = db.session.get(Bill, bill_id)
    if not bill:
        raise LayawayError("Bill not found", details={"bill_id": bill_id})
    if bill.bill_type != BILL_TYPE_LAYAWAY:
        raise LayawayError("Bill is not a layaway bill", details={"bill_id": bill_id})

    payment = build_payment(bill, staff_id=staff_id, **fields)
    commit_or_fail("layaway payment", "layaway")
    return payment


def list_payments(bill_id: int) -> list[LayawayTransaction]:
    return (
        db.session.query(LayawayTransaction)
        .filter_by(bill_id=bill_id)
        .order_by(LayawayTransaction.payment_date, LayawayTransaction.id)
        .all()
    )


def layaway_summary(bill: Bill) -> dict:
    payments = list_payments(bill.id)
    paid = sum(p.amount_paise for p in payments)
    return {
        "bill_id": bill.id,
        "grand_total_paise": bill.grand_total_paise,
        "total_paid_paise": paid,
        "remaining_paise": bill.grand_total_paise - paid,
        "payments": [p.to_dict() for p in payments],
    }
