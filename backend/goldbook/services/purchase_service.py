# Overview: Service-layer operations for purchase slips (old metal bought from a customer).

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..metals import METAL_TYPES, metal_type_for_purity
from ..models import PurchaseBill, PurchaseItem
from ..validation import ValidationError, clean_text, issue, parse_int, parse_paise, parse_weight_mg
from goldbook.time_utils import parse_iso_date, today
from .customer_service import get_customer
from .document_service import next_document_number
from .persistence import unit_of_work
from .rate_service import RateSession
from .valuation import metal_value_paise, split_tax


class PurchaseError(Exception):
    """Raised for purchase slip errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def get_purchase(purchase_id: int) -> PurchaseBill:
    purchase = db.session.get(PurchaseBill, purchase_id)
    if not purchase:
        raise PurchaseError("Purchase not found", details={"purchase_id": purchase_id})
    return purchase


def _parse_lines(raw_items: list, rates: RateSession) -> tuple[list[PurchaseItem], list[dict]]:
    lines: list[PurchaseItem] = []
    problems: list[dict] = []
    for index, row in enumerate(raw_items):
        if not isinstance(row, dict):
            problems.append(issue("item", "must be an object", index))
            continue
        try:
            weight_mg = parse_weight_mg(row.get("weight_grams"))
            manual_rate = parse_paise(row.get("rate_paise"), "rate_paise", required=False)
            purity = clean_text(row.get("purity"), max_length=32, field="purity")
            hsn_code = clean_text(row.get("hsn_code"), max_length=16, field="hsn_code")
            code = clean_text(row.get("code"), max_length=64, field="code")
        except ValidationError as exc:
            problems.append(issue("item", str(exc), index))
            continue

        metal_type = row.get("metal_type") or metal_type_for_purity(purity)
        if metal_type not in METAL_TYPES:
            problems.append(issue("metal_type", f"unknown metal type {metal_type}", index))
            continue
        if weight_mg <= 0:
            problems.append(issue("weight_grams", "weight must be greater than 0", index))
            continue

        resolution = rates.resolve_line(metal_type, manual_rate)
        if not resolution.resolved or resolution.rate_paise <= 0:
            problems.append(issue("rate_paise", f"no rate available for {metal_type}", index))
            continue

        lines.append(PurchaseItem(
            hsn_code=hsn_code,
            code=code,
            purity=purity,
            metal_type=metal_type,
            weight_mg=weight_mg,
            rate_paise=resolution.rate_paise,
            amount_paise=metal_value_paise(weight_mg, resolution.rate_paise),
        ))
    return lines, problems


def create_purchase(data: dict, *, staff_id: int, rates: RateSession | None = None) -> PurchaseBill:
    """
    Record a purchase slip.

    Lines without a rate are priced at the day's rate for the metal their
    purity maps to. GST is split evenly into CGST and SGST.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    customer_id = parse_int(data.get("customer_id"), "customer_id")
    if get_customer(customer_id) is None:
        raise ValidationError("Customer not found", details=[issue("customer_id", f"customer {customer_id} not found")])

    try:
        purchase_date = parse_iso_date(data.get("purchase_date")) or today()
    except ValueError:
        raise ValidationError("purchase_date must be a YYYY-MM-DD date")

    raw_items = data.get("items") or []
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one purchase line is required")

    rates = rates or RateSession(on_date=purchase_date)
    lines, problems = _parse_lines(raw_items, rates)
    if problems:
        raise ValidationError(problems[0]["message"], details=problems)

    subtotal = sum(line.amount_paise for line in lines)
    cgst, sgst = split_tax(subtotal, current_app.config.get("PURCHASE_GST_RATE_BPS", 1800))

    with unit_of_work("purchase") as uow:
        with uow.stage_of("purchase"):
            purchase = PurchaseBill(
                bill_no=next_document_number(
                    document_type="PURCHASE",
                    prefix=f"{current_app.config.get('BILL_NUMBER_PREFIX', 'AM')}-PURCHASE",
                    on_date=purchase_date,
                ),
                purchase_date=purchase_date,
                customer_id=customer_id,
                staff_id=staff_id,
                subtotal_paise=subtotal,
                cgst_paise=cgst,
                sgst_paise=sgst,
                grand_total_paise=subtotal + cgst + sgst,
            )
            db.session.add(purchase)
            db.session.flush()

        with uow.stage_of("items"):
            for index, line in enumerate(lines):
                uow.at(index)
                purchase.items.append(line)
            db.session.flush()

    current_app.logger.info(
        "Recorded purchase %s for customer %s by staff %s: grand_total=%s",
        purchase.bill_no, customer_id, staff_id, purchase.grand_total_paise,
    )
    return purchase
