# Overview: Transaction assembler; validates a working draft and writes bill, items, exchanges and booking/layaway as one unit.

"""
Transaction Assembler

A working draft (customer, line items, old-gold exchanges, total lock,
advance booking or layaway terms) is checked by a validation gate that
performs no writes, then saved in this order:

    customer -> bill -> items -> exchanges -> booking | layaway

All stages share one unit of work: if any stage fails, nothing is kept and
the PersistenceFailure names the stage and record index. The caller passes
the staff id explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from flask import current_app

from ..extensions import db
from ..metals import DEFAULT_ITEM_HSN, METAL_GOLD, METAL_TYPES
from ..models import Bill, BillItem, Customer
from ..validation import (
    ValidationError,
    clean_text,
    issue,
    parse_bool,
    parse_int,
    parse_paise,
    parse_weight_mg,
)
from goldbook.time_utils import parse_iso_date, today, utcnow
from .bill_service import (
    BILL_STATUS_DRAFT,
    BILL_STATUS_FINAL,
    BILL_TYPE_ADVANCE_BOOKING,
    BILL_TYPE_LAYAWAY,
    BILL_TYPE_SALE,
    get_bill,
)
from .booking_service import advance_issues, upsert_booking
from .customer_service import build_customer, get_customer
from .document_service import next_document_number
from .exchange_service import (
    ExchangeDraft,
    ReconcileResult,
    bill_exchange_rows,
    persisted_id,
    reconcile_bill_exchanges,
    validate_exchange_drafts,
)
from .layaway_service import build_payment, normalize_method, total_paid_paise
from .persistence import unit_of_work
from .rate_service import RateSession
from .total_lock import TotalLock
from .valuation import (
    SALE_TYPE_GST,
    TAX_MODE_INTRASTATE,
    BillTotals,
    compute_bill_totals,
    line_value,
)


# =============================================================================
# DRAFT TYPES
# =============================================================================

@dataclass
class ItemDraft:
    """One bill line in the working draft. rate_paise, when given, is a manual rate."""
    item_name: str | None
    weight_mg: int | None
    metal_type: str = METAL_GOLD
    rate_paise: int | None = None
    making_charge_paise: int = 0
    purity: str | None = None
    hsn_code: str | None = None
    barcode: str | None = None
    id: int | str | None = None

    @classmethod
    def from_payload(cls, data: dict, index: int) -> "ItemDraft":
        if not isinstance(data, dict):
            raise ValidationError("Invalid line item", details=[issue("item", "must be an object", index)])
        try:
            return cls(
                id=data.get("id"),
                item_name=clean_text(data.get("item_name"), max_length=255, field="item_name"),
                weight_mg=parse_weight_mg(data.get("weight_grams"), required=False),
                metal_type=str(data.get("metal_type") or METAL_GOLD).strip().lower(),
                rate_paise=parse_paise(data.get("rate_paise"), "rate_paise", required=False),
                making_charge_paise=parse_paise(data.get("making_charge_paise"), "making_charge_paise", required=False) or 0,
                purity=clean_text(data.get("purity"), max_length=32, field="purity"),
                hsn_code=clean_text(data.get("hsn_code"), max_length=16, field="hsn_code"),
                barcode=clean_text(data.get("barcode"), max_length=64, field="barcode"),
            )
        except ValidationError as exc:
            raise ValidationError(str(exc), details=[issue("item", str(exc), index)])


@dataclass
class PricedItem:
    draft: ItemDraft
    rate_paise: int
    rate_source: str
    line_total_paise: int


@dataclass
class AdvanceTerms:
    advance_paise: int | None
    delivery_date: date | None
    item_description: str | None = None
    customer_notes: str | None = None


@dataclass
class LayawayTerms:
    initial_payment_paise: int = 0
    payment_method: str | None = None
    reference_number: str | None = None
    notes: str | None = None


@dataclass
class TransactionDraft:
    items: list[ItemDraft] = field(default_factory=list)
    exchanges: list[ExchangeDraft] = field(default_factory=list)
    customer_id: int | None = None
    new_customer: dict | None = None
    bill_date: date | None = None
    sale_type: str = SALE_TYPE_GST
    tax_mode: str = TAX_MODE_INTRASTATE
    discount_paise: int = 0
    total_locked: bool = False
    total_paise: int | None = None
    advance: AdvanceTerms | None = None
    layaway: LayawayTerms | None = None
    finalize: bool = False

    @property
    def bill_type(self) -> str:
        if self.advance is not None:
            return BILL_TYPE_ADVANCE_BOOKING
        if self.layaway is not None:
            return BILL_TYPE_LAYAWAY
        return BILL_TYPE_SALE

    @classmethod
    def from_payload(cls, data: dict) -> "TransactionDraft":
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")

        raw_items = data.get("items") or []
        raw_exchanges = data.get("exchanges") or []
        if not isinstance(raw_items, list) or not isinstance(raw_exchanges, list):
            raise ValidationError("items and exchanges must be lists")

        exchanges = []
        for index, row in enumerate(raw_exchanges):
            try:
                exchanges.append(ExchangeDraft.from_payload(row, index=index))
            except ValidationError as exc:
                raise ValidationError(str(exc), details=exc.details or [issue("exchange", str(exc), index)])

        advance = None
        if data.get("advance") is not None:
            raw = data["advance"]
            if not isinstance(raw, dict):
                raise ValidationError("advance must be an object")
            advance = AdvanceTerms(
                advance_paise=parse_paise(raw.get("advance_paise"), "advance_paise", required=False),
                delivery_date=_parse_date(raw.get("delivery_date"), "delivery_date"),
                item_description=clean_text(raw.get("item_description")),
                customer_notes=clean_text(raw.get("customer_notes")),
            )

        layaway = None
        if data.get("layaway") is not None:
            raw = data["layaway"]
            if not isinstance(raw, dict):
                raise ValidationError("layaway must be an object")
            layaway = LayawayTerms(
                initial_payment_paise=parse_paise(raw.get("initial_payment_paise"), "initial_payment_paise", required=False) or 0,
                payment_method=raw.get("payment_method"),
                reference_number=clean_text(raw.get("reference_number"), max_length=128, field="reference_number"),
                notes=clean_text(raw.get("notes")),
            )

        customer_id = data.get("customer_id")
        return cls(
            items=[ItemDraft.from_payload(row, index) for index, row in enumerate(raw_items)],
            exchanges=exchanges,
            customer_id=parse_int(customer_id, "customer_id", required=False),
            new_customer=data.get("new_customer"),
            bill_date=_parse_date(data.get("bill_date"), "bill_date"),
            sale_type=data.get("sale_type") or SALE_TYPE_GST,
            tax_mode=data.get("tax_mode") or TAX_MODE_INTRASTATE,
            discount_paise=parse_paise(data.get("discount_paise"), "discount_paise", required=False) or 0,
            total_locked=parse_bool(data.get("total_locked"), "total_locked"),
            total_paise=parse_paise(data.get("total_paise"), "total_paise", required=False),
            advance=advance,
            layaway=layaway,
            finalize=parse_bool(data.get("finalize"), "finalize"),
        )


def _parse_date(value, field_name: str) -> date | None:
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be a YYYY-MM-DD date")


@dataclass
class PreparedTransaction:
    draft: TransactionDraft
    priced_items: list[PricedItem]
    lock: TotalLock
    totals: BillTotals
    customer: Customer | None
    bill: Bill | None


@dataclass
class TransactionResult:
    bill: Bill
    customer: Customer
    exchanges: ReconcileResult
    created: bool
    booking: object | None = None
    layaway_payment: object | None = None

    def to_dict(self) -> dict:
        return {
            "bill": self.bill.to_dict(),
            "customer": self.customer.to_dict(),
            "items": [item.to_dict() for item in self.bill.items],
            "exchanges": self.exchanges.to_dict(),
            "created": self.created,
            "advance_booking": self.booking.to_dict() if self.booking else None,
            "layaway_payment": self.layaway_payment.to_dict() if self.layaway_payment else None,
        }


# =============================================================================
# VALIDATION GATE
# =============================================================================

def price_items(items: list[ItemDraft], rates: RateSession) -> tuple[list[PricedItem], list[dict]]:
    """Resolve each line's rate and total; collect every problem instead of stopping at the first."""
    priced: list[PricedItem] = []
    problems: list[dict] = []
    for index, item in enumerate(items):
        line_problems = []
        if not item.item_name:
            line_problems.append(issue("item_name", "item name is required", index))
        if item.weight_mg is None or item.weight_mg <= 0:
            line_problems.append(issue("weight_grams", "weight must be greater than 0", index))
        if item.making_charge_paise < 0:
            line_problems.append(issue("making_charge_paise", "making charge cannot be negative", index))
        if item.metal_type not in METAL_TYPES:
            line_problems.append(issue("metal_type", f"unknown metal type {item.metal_type}", index))
            problems.extend(line_problems)
            continue

        resolution = rates.resolve_line(item.metal_type, item.rate_paise)
        if not resolution.resolved or resolution.rate_paise <= 0:
            line_problems.append(issue("rate_paise", f"no rate available for {item.metal_type}", index))

        if line_problems:
            problems.extend(line_problems)
            continue

        line_total = line_value(item.weight_mg, resolution.rate_paise, item.making_charge_paise, index=index)
        if line_total <= 0:
            problems.append(issue("line_total_paise", "line total must be greater than 0", index))
            continue
        priced.append(PricedItem(item, resolution.rate_paise, resolution.source, line_total))
    return priced, problems


def _existing_item_ids(bill: Bill) -> set[int]:
    return {item.id for item in bill.items}


def _edit_issues(draft: TransactionDraft, bill: Bill, lock: TotalLock) -> list[dict]:
    problems = []
    if draft.customer_id is not None and draft.customer_id != bill.customer_id:
        problems.append(issue("customer_id", "customer cannot change after the bill is created"))
    if draft.new_customer:
        problems.append(issue("new_customer", "customer cannot change after the bill is created"))
    if draft.bill_date is not None and draft.bill_date != bill.bill_date:
        problems.append(issue("bill_date", "bill date cannot change after the bill is created"))
    if draft.bill_type != bill.bill_type:
        problems.append(issue("bill_type", f"bill type cannot change from {bill.bill_type}"))
    if draft.layaway is not None and draft.layaway.initial_payment_paise:
        problems.append(issue("initial_payment_paise", "record further layaway payments through the layaway ledger"))

    existing = _existing_item_ids(bill)
    seen: set[int] = set()
    for index, item in enumerate(draft.items):
        pid = persisted_id(item.id)
        if pid is None:
            continue
        if pid not in existing:
            problems.append(issue("id", f"item {pid} does not belong to this bill", index))
        elif pid in seen:
            problems.append(issue("id", f"item {pid} appears more than once", index))
        seen.add(pid)

    if bill.status == BILL_STATUS_FINAL:
        draft_ids = [persisted_id(item.id) for item in draft.items]
        if None in draft_ids or set(draft_ids) != existing:
            problems.append(issue("items", "bill is finalized; line items cannot change"))
        if lock.total != bill.subtotal_paise or (draft.discount_paise or 0) != bill.discount_paise:
            problems.append(issue("total_paise", "bill is finalized; totals cannot change"))
        if draft.sale_type != bill.sale_type or draft.tax_mode != bill.tax_mode:
            problems.append(issue("sale_type", "bill is finalized; tax treatment cannot change"))
    return problems


def prepare_transaction(
    draft: TransactionDraft,
    *,
    bill_id: int | None = None,
    rates: RateSession | None = None,
) -> PreparedTransaction:
    """
    Validation gate. Reads only; raises ValidationError listing every problem.

    Raises BillError when bill_id does not exist.
    """
    bill = get_bill(bill_id) if bill_id is not None else None
    rates = rates or RateSession(on_date=bill.bill_date if bill else (draft.bill_date or today()))
    problems: list[dict] = []

    customer = None
    if bill is not None:
        customer = bill.customer
    elif draft.customer_id is not None:
        customer = get_customer(draft.customer_id)
        if customer is None:
            problems.append(issue("customer_id", f"customer {draft.customer_id} not found"))
    elif draft.new_customer:
        new = draft.new_customer
        if not isinstance(new, dict) or not clean_text(new.get("name")) or not clean_text(new.get("phone")):
            problems.append(issue("new_customer", "name and phone are required to create a customer"))
    else:
        problems.append(issue("customer_id", "customer is required"))

    if draft.advance is not None and draft.layaway is not None:
        problems.append(issue("bill_type", "a transaction is either an advance booking or a layaway, not both"))

    if not draft.items:
        problems.append(issue("items", "at least one line item is required"))

    priced, item_problems = price_items(draft.items, rates)
    problems.extend(item_problems)

    for ex in draft.exchanges:
        if not ex.rate_paise:
            ex.rate_paise = rates.resolve_line(ex.metal_type).rate_paise
    existing_exchange_ids = {row.id for row in bill_exchange_rows(bill.id)} if bill else set()
    try:
        validate_exchange_drafts(draft.exchanges, existing_exchange_ids)
    except ValidationError as exc:
        problems.extend({**d, "field": f"exchanges.{d['field']}"} for d in exc.details)

    line_totals = [p.line_total_paise for p in priced]
    if draft.total_locked and (draft.total_paise is None or draft.total_paise <= 0):
        problems.append(issue("total_paise", "total amount must be greater than 0 when entered manually"))
        lock = TotalLock(line_totals)
    else:
        lock = TotalLock.from_draft(line_totals, locked=draft.total_locked, total_paise=draft.total_paise)

    if bill is not None:
        problems.extend(_edit_issues(draft, bill, lock))

    totals = None
    try:
        totals = compute_bill_totals(
            lock.total,
            discount_paise=draft.discount_paise,
            sale_type=draft.sale_type,
            tax_mode=draft.tax_mode,
            gst_rate_bps=current_app.config.get("GST_RATE_BPS", 300),
        )
    except ValidationError as exc:
        problems.append(issue("totals", str(exc)))

    if totals is not None:
        if draft.advance is not None:
            problems.extend(
                advance_issues(draft.advance.advance_paise, totals.grand_total_paise, draft.advance.delivery_date)
            )
        if draft.layaway is not None:
            try:
                normalize_method(draft.layaway.payment_method)
            except ValidationError as exc:
                problems.append(issue("payment_method", str(exc)))
            if draft.layaway.initial_payment_paise > totals.grand_total_paise:
                problems.append(issue("initial_payment_paise", "initial payment cannot exceed the grand total"))
            if bill is not None:
                paid = total_paid_paise(bill.id)
                if totals.grand_total_paise < paid:
                    problems.append(issue("total_paise", f"grand total cannot drop below the {paid} already paid"))

    if problems:
        raise ValidationError(problems[0]["message"], details=problems)

    return PreparedTransaction(
        draft=draft,
        priced_items=priced,
        lock=lock,
        totals=totals,
        customer=customer,
        bill=bill,
    )


# =============================================================================
# WRITE STAGES
# =============================================================================

def _apply_item(row: BillItem, priced: PricedItem, serial_no: int) -> None:
    item = priced.draft
    row.serial_no = serial_no
    row.item_name = item.item_name
    row.barcode = item.barcode
    row.metal_type = item.metal_type
    row.purity = item.purity
    row.hsn_code = item.hsn_code or DEFAULT_ITEM_HSN
    row.weight_mg = item.weight_mg
    row.rate_paise = priced.rate_paise
    row.making_charge_paise = item.making_charge_paise
    row.line_total_paise = priced.line_total_paise


def _sync_items(bill: Bill, priced_items: list[PricedItem], uow) -> None:
    """Same diff as the exchange ledger: drop removed lines, update kept ones, append new ones."""
    existing = {row.id: row for row in bill.items}
    keep = {pid for pid in (persisted_id(p.draft.id) for p in priced_items) if pid is not None}

    for row_id, row in existing.items():
        if row_id not in keep:
            bill.items.remove(row)

    for index, priced in enumerate(priced_items):
        uow.at(index)
        pid = persisted_id(priced.draft.id)
        if pid is not None:
            _apply_item(existing[pid], priced, index + 1)
        else:
            row = BillItem()
            _apply_item(row, priced, index + 1)
            bill.items.append(row)
    db.session.flush()


def save_transaction(
    draft: TransactionDraft,
    *,
    staff_id: int,
    bill_id: int | None = None,
    rates: RateSession | None = None,
) -> TransactionResult:
    """Validate then write the whole transaction atomically."""
    prepared = prepare_transaction(draft, bill_id=bill_id, rates=rates)
    bill = prepared.bill
    created = bill is None
    items_frozen = not created and bill.status == BILL_STATUS_FINAL
    totals = prepared.totals
    booking = None
    payment = None

    with unit_of_work("transaction") as uow:
        with uow.stage_of("customer"):
            customer = prepared.customer
            if customer is None:
                customer = build_customer(draft.new_customer)
                db.session.flush()

        with uow.stage_of("bill"):
            if created:
                bill_date = draft.bill_date or today()
                bill = Bill(
                    bill_no=next_document_number(
                        document_type="BILL",
                        prefix=current_app.config.get("BILL_NUMBER_PREFIX", "AM"),
                        on_date=bill_date,
                    ),
                    bill_date=bill_date,
                    customer_id=customer.id,
                    bill_type=draft.bill_type,
                    status=BILL_STATUS_DRAFT,
                    created_by_staff_id=staff_id,
                )
                db.session.add(bill)
            bill.sale_type = draft.sale_type
            bill.tax_mode = draft.tax_mode
            bill.subtotal_paise = totals.subtotal_paise
            bill.discount_paise = totals.discount_paise
            bill.cgst_paise = totals.cgst_paise
            bill.sgst_paise = totals.sgst_paise
            bill.igst_paise = totals.igst_paise
            bill.grand_total_paise = totals.grand_total_paise
            bill.total_locked = prepared.lock.is_locked
            bill.updated_by_staff_id = staff_id
            if draft.finalize and bill.status != BILL_STATUS_FINAL:
                bill.status = BILL_STATUS_FINAL
                bill.finalized_at = utcnow()
            db.session.flush()

        with uow.stage_of("items"):
            if not items_frozen:
                _sync_items(bill, prepared.priced_items, uow)

        with uow.stage_of("exchanges"):
            exchanges = reconcile_bill_exchanges(bill.id, draft.exchanges, staff_id=staff_id, tracker=uow)

        if draft.advance is not None:
            with uow.stage_of("booking"):
                booking = upsert_booking(
                    bill,
                    advance_paise=draft.advance.advance_paise,
                    total_paise=totals.grand_total_paise,
                    delivery_date=draft.advance.delivery_date,
                    item_description=draft.advance.item_description,
                    customer_notes=draft.advance.customer_notes,
                )
                db.session.flush()

        if draft.layaway is not None and draft.layaway.initial_payment_paise:
            with uow.stage_of("layaway"):
                payment = build_payment(
                    bill,
                    amount_paise=draft.layaway.initial_payment_paise,
                    payment_method=draft.layaway.payment_method,
                    reference_number=draft.layaway.reference_number,
                    notes=draft.layaway.notes,
                    staff_id=staff_id,
                    remaining=totals.grand_total_paise,
                )
                db.session.flush()

    current_app.logger.info(
        "Saved %s bill %s (%s) by staff %s: subtotal=%s grand_total=%s locked=%s",
        "new" if created else "edited", bill.bill_no, bill.bill_type, staff_id,
        bill.subtotal_paise, bill.grand_total_paise, bill.total_locked,
    )
    return TransactionResult(
        bill=bill,
        customer=customer,
        exchanges=exchanges,
        created=created,
        booking=booking,
        layaway_payment=payment,
    )


def create_transaction(draft: TransactionDraft, *, staff_id: int, rates: RateSession | None = None) -> TransactionResult:
    return save_transaction(draft, staff_id=staff_id, rates=rates)


def update_transaction(
    bill_id: int,
    draft: TransactionDraft,
    *,
    staff_id: int,
    rates: RateSession | None = None,
) -> TransactionResult:
    return save_transaction(draft, staff_id=staff_id, bill_id=bill_id, rates=rates)
