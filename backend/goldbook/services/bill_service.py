# Overview: Service-layer operations for bills; read, load-for-edit, finalize and delete.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Bill, OldGoldExchange
from goldbook.time_utils import utcnow, to_iso_date
from .exchange_service import ExchangeDraft
from .persistence import commit_or_fail
from .total_lock import TotalLock


BILL_TYPE_SALE = "SALE"
BILL_TYPE_ADVANCE_BOOKING = "ADVANCE_BOOKING"
BILL_TYPE_LAYAWAY = "LAYAWAY"
BILL_TYPES = [BILL_TYPE_SALE, BILL_TYPE_ADVANCE_BOOKING, BILL_TYPE_LAYAWAY]

BILL_STATUS_DRAFT = "DRAFT"
BILL_STATUS_FINAL = "FINAL"


class BillError(Exception):
    """Raised for bill operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def get_bill(bill_id: int) -> Bill:
    bill = db.session.get(Bill, bill_id)
    if not bill:
        raise BillError("Bill not found", details={"bill_id": bill_id})
    return bill


def list_bills(
    *,
    customer_id: int | None = None,
    bill_type: str | None = None,
    status: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Bill], int]:
    query = db.session.query(Bill)
    if customer_id:
        query = query.filter(Bill.customer_id == customer_id)
    if bill_type:
        query = query.filter(Bill.bill_type == bill_type)
    if status:
        query = query.filter(Bill.status == status)

    total = query.count()

    if offset < 0:
        offset = 0
    if limit < 1:
        limit = 1
    if limit > 500:
        limit = 500

    bills = query.order_by(Bill.bill_date.desc(), Bill.id.desc()).offset(offset).limit(limit).all()
    return bills, total


def exchange_credit_paise(bill: Bill) -> int:
    return sum(row.total_value_paise for row in bill.exchanges)


def bill_detail(bill: Bill) -> dict:
    """Bill with items, exchanges, booking and layaway payments."""
    from .layaway_service import layaway_summary

    credit = exchange_credit_paise(bill)
    return {
        "bill": bill.to_dict(),
        "customer": bill.customer.to_dict() if bill.customer else None,
        "items": [item.to_dict() for item in bill.items],
        "exchanges": [row.to_dict() for row in bill.exchanges],
        "exchange_credit_paise": credit,
        "net_payable_paise": bill.grand_total_paise - credit,
        "advance_booking": bill.advance_booking.to_dict() if bill.advance_booking else None,
        "layaway": layaway_summary(bill) if bill.bill_type == BILL_TYPE_LAYAWAY else None,
    }


def load_for_edit(bill_id: int) -> dict:
    """
    Working draft for an existing bill.

    The total lock always starts LOCKED at the persisted subtotal so that
    re-saving never silently replaces a negotiated total.
    """
    bill = get_bill(bill_id)
    lock = TotalLock.from_persisted(bill.subtotal_paise, [item.line_total_paise for item in bill.items])

    booking = bill.advance_booking
    return {
        "bill_id": bill.id,
        "bill_no": bill.bill_no,
        "bill_date": to_iso_date(bill.bill_date),
        "customer_id": bill.customer_id,
        "bill_type": bill.bill_type,
        "status": bill.status,
        "sale_type": bill.sale_type,
        "tax_mode": bill.tax_mode,
        "discount_paise": bill.discount_paise,
        "total_locked": lock.is_locked,
        "total_paise": lock.total,
        "total_lock": lock.to_dict(),
        "items": [
            {
                "id": item.id,
                "item_name": item.item_name,
                "barcode": item.barcode,
                "metal_type": item.metal_type,
                "purity": item.purity,
                "hsn_code": item.hsn_code,
                "weight_grams": item.to_dict()["weight_grams"],
                "rate_paise": item.rate_paise,
                "making_charge_paise": item.making_charge_paise,
                "line_total_paise": item.line_total_paise,
            }
            for item in bill.items
        ],
        "exchanges": [ExchangeDraft.from_row(row).to_dict() for row in bill.exchanges],
        "advance": {
            "advance_paise": booking.advance_paise,
            "delivery_date": to_iso_date(booking.delivery_date),
            "item_description": booking.item_description,
            "customer_notes": booking.customer_notes,
        } if booking else None,
        "layaway": {} if bill.bill_type == BILL_TYPE_LAYAWAY else None,
    }


def finalize_bill(bill_id: int, *, staff_id: int | None = None) -> Bill:
    """DRAFT -> FINAL. Line items and totals are frozen from here on."""
    bill = get_bill(bill_id)
    if bill.status == BILL_STATUS_FINAL:
        return bill
    if not bill.items:
        raise BillError("Cannot finalize a bill with no items")

    bill.status = BILL_STATUS_FINAL
    bill.finalized_at = utcnow()
    bill.updated_by_staff_id = staff_id
    commit_or_fail("bill", "finalize")
    return bill


def delete_bill(bill_id: int) -> list[int]:
    """
    Delete a bill with its items, layaway payments and booking.

    Exchange rows survive as standalone entries; returns their ids.
    """
    bill = get_bill(bill_id)
    detached = []
    for row in db.session.query(OldGoldExchange).filter_by(bill_id=bill.id).all():
        row.bill_id = None
        detached.append(row.id)

    db.session.delete(bill)
    commit_or_fail("bill", "delete")
    current_app.logger.info("Deleted bill %s; detached exchanges %s", bill_id, detached)
    return detached
