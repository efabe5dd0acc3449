# Overview: Service-layer operations for the old-gold exchange ledger.

"""
Old-Gold Exchange Ledger

Two ledgers share one table:
- bill-attached rows (bill_id set) are kept equal to the operator's working
  draft by reconcile_bill_exchanges() whenever the bill is saved;
- standalone walk-in rows (bill_id NULL) are created, edited and deleted
  directly and are never touched by reconciliation.

Reconciliation is idempotent: saving an unchanged draft twice performs only
updates, never a second insert or an accidental delete.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from flask import current_app

from ..extensions import db
from ..metals import DEFAULT_EXCHANGE_HSN, METAL_GOLD, require_metal_type
from ..models import OldGoldExchange
from ..validation import (
    ValidationError,
    clean_text,
    issue,
    mg_to_grams,
    parse_paise,
    parse_weight_mg,
)
from .exchange_notes import encode_exchange_notes, resolve_particulars_and_hsn
from .persistence import StageTracker, commit_or_fail
from .valuation import exchange_value


class ExchangeError(Exception):
    """Raised for exchange ledger errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class ExchangeDraft:
    """
    One exchange row as it stands in the operator's working draft.

    id is the persisted row id for rows loaded from the store, or a
    client-side placeholder (None or any non-numeric string) for new rows.
    """
    weight_mg: int
    rate_paise: int
    id: int | str | None = None
    metal_type: str = METAL_GOLD
    purity: str | None = None
    particulars: str | None = None
    hsn_code: str | None = None

    @property
    def total_value_paise(self) -> int:
        return exchange_value(self.weight_mg, self.rate_paise)

    @classmethod
    def from_payload(cls, data: dict, *, index: int | None = None, rates=None) -> "ExchangeDraft":
        """
        Build a draft from request JSON.

        rate_paise is optional. With a RateSession a missing or zero rate is
        resolved here for the row's metal_type (standard gold by default);
        without one it stays 0 for the caller to resolve.
        """
        if not isinstance(data, dict):
            raise ValidationError("Invalid exchange row", details=[issue("exchange", "must be an object", index)])
        weight_mg = parse_weight_mg(data.get("weight_grams"), "weight_grams")
        metal_type = require_metal_type(data.get("metal_type") or METAL_GOLD, index=index)
        manual_rate = parse_paise(data.get("rate_paise"), "rate_paise", required=False)
        rate_paise = manual_rate or 0
        if rates is not None:
            resolution = rates.resolve_line(metal_type, manual_rate)
            rate_paise = resolution.rate_paise
        return cls(
            id=data.get("id"),
            weight_mg=weight_mg,
            rate_paise=rate_paise,
            metal_type=metal_type,
            purity=clean_text(data.get("purity"), max_length=64, field="purity"),
            particulars=clean_text(data.get("particulars"), max_length=255, field="particulars"),
            hsn_code=clean_text(data.get("hsn_code"), max_length=16, field="hsn_code"),
        )

    @classmethod
    def from_row(cls, row: OldGoldExchange) -> "ExchangeDraft":
        particulars, hsn_code = resolve_particulars_and_hsn(row)
        return cls(
            id=row.id,
            weight_mg=row.weight_mg,
            rate_paise=row.rate_paise,
            metal_type=row.metal_type or METAL_GOLD,
            purity=row.purity,
            particulars=particulars,
            hsn_code=hsn_code,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "weight_mg": self.weight_mg,
            "weight_grams": mg_to_grams(self.weight_mg),
            "rate_paise": self.rate_paise,
            "metal_type": self.metal_type,
            "purity": self.purity,
            "particulars": self.particulars,
            "hsn_code": self.hsn_code,
            "total_value_paise": self.total_value_paise,
        }


@dataclass
class ReconcileResult:
    inserted: list[int] = field(default_factory=list)
    updated: list[int] = field(default_factory=list)
    deleted: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"inserted": self.inserted, "updated": self.updated, "deleted": self.deleted}


def persisted_id(draft_id) -> int | None:
    """
    The persisted row id a draft row refers to, or None for a new row.

    Only a positive int or a string of digits counts. Anything else
    (None, "tmp-1712", "12abc") is treated as a client placeholder.
    """
    if isinstance(draft_id, bool):
        return None
    if isinstance(draft_id, int):
        return draft_id if draft_id > 0 else None
    if isinstance(draft_id, str):
        text = draft_id.strip()
        if text.isdigit() and int(text) > 0:
            return int(text)
    return None


def validate_exchange_drafts(drafts: list[ExchangeDraft], existing_ids: set[int]) -> None:
    """
    Reject a draft set that cannot be reconciled against existing_ids.

    A numeric id that is not one of this bill's rows is an error rather than
    a silent insert (or an update of some other bill's row).
    """
    problems = []
    seen: set[int] = set()
    for index, draft in enumerate(drafts):
        if draft.weight_mg is None or draft.weight_mg <= 0:
            problems.append(issue("weight_grams", "weight must be greater than 0", index))
        if draft.rate_paise is None or draft.rate_paise <= 0:
            problems.append(issue("rate_paise", "rate must be greater than 0", index))
        pid = persisted_id(draft.id)
        if pid is None:
            continue
        if pid not in existing_ids:
            problems.append(issue("id", f"exchange {pid} is not attached to this bill", index))
        elif pid in seen:
            problems.append(issue("id", f"exchange {pid} appears more than once", index))
        seen.add(pid)
    if problems:
        raise ValidationError("Invalid old gold exchange rows", details=problems)


def _apply_draft(row: OldGoldExchange, draft: ExchangeDraft) -> None:
    hsn_code = draft.hsn_code or DEFAULT_EXCHANGE_HSN
    row.weight_mg = draft.weight_mg
    row.metal_type = draft.metal_type
    row.purity = draft.purity
    row.rate_paise = draft.rate_paise
    row.total_value_paise = draft.total_value_paise
    row.particulars = draft.particulars
    row.hsn_code = hsn_code
    row.notes = encode_exchange_notes(draft.particulars, hsn_code)


def bill_exchange_rows(bill_id: int) -> list[OldGoldExchange]:
    return (
        db.session.query(OldGoldExchange)
        .filter_by(bill_id=bill_id)
        .order_by(OldGoldExchange.id)
        .all()
    )


def reconcile_bill_exchanges(
    bill_id: int,
    drafts: list[ExchangeDraft],
    *,
    staff_id: int | None = None,
    tracker: StageTracker | None = None,
) -> ReconcileResult:
    """
    Make the bill's exchange rows equal the working draft.

    1. load persisted ids for the bill
    2. split the draft into persisted ids and new rows
    3. delete persisted rows missing from the draft
    4. update draft rows with a persisted id
    5. insert draft rows without one, attached to the bill

    Flushes only; the caller's unit of work commits.
    """
    existing = {row.id: row for row in bill_exchange_rows(bill_id)}
    validate_exchange_drafts(drafts, set(existing))

    current_ids = {pid for pid in (persisted_id(d.id) for d in drafts) if pid is not None}
    result = ReconcileResult()

    for row_id, row in existing.items():
        if row_id not in current_ids:
            db.session.delete(row)
            result.deleted.append(row_id)
    db.session.flush()

    new_rows = []
    for index, draft in enumerate(drafts):
        if tracker:
            tracker.at(index)
        pid = persisted_id(draft.id)
        if pid is not None:
            _apply_draft(existing[pid], draft)
            result.updated.append(pid)
        else:
            row = OldGoldExchange(bill_id=bill_id, created_by_staff_id=staff_id)
            _apply_draft(row, draft)
            db.session.add(row)
            new_rows.append(row)
        # flush per row: a rejected write carries this row index
        db.session.flush()
    if tracker:
        tracker.at(None)
    result.inserted.extend(row.id for row in new_rows)

    current_app.logger.info(
        "Reconciled exchanges for bill %s: inserted=%s updated=%s deleted=%s",
        bill_id, result.inserted, result.updated, result.deleted,
    )
    return result


# =============================================================================
# STANDALONE LEDGER
# =============================================================================

def get_exchange(exchange_id: int) -> OldGoldExchange:
    row = db.session.get(OldGoldExchange, exchange_id)
    if not row:
        raise ExchangeError("Exchange not found", details={"exchange_id": exchange_id})
    return row


def list_exchanges(
    *,
    standalone_only: bool = False,
    bill_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[OldGoldExchange], int]:
    query = db.session.query(OldGoldExchange)
    if standalone_only:
        query = query.filter(OldGoldExchange.bill_id.is_(None))
    elif bill_id is not None:
        query = query.filter(OldGoldExchange.bill_id == bill_id)

    total = query.count()

    if offset < 0:
        offset = 0
    if limit < 1:
        limit = 1
    if limit > 500:
        limit = 500

    rows = (
        query.order_by(OldGoldExchange.created_at.desc(), OldGoldExchange.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total


def create_exchange(draft: ExchangeDraft, *, staff_id: int | None = None) -> OldGoldExchange:
    """Record a standalone walk-in exchange (no bill)."""
    validate_exchange_drafts([replace(draft, id=None)], set())
    row = OldGoldExchange(bill_id=None, created_by_staff_id=staff_id)
    _apply_draft(row, draft)
    db.session.add(row)
    commit_or_fail("old gold exchange", "exchange")
    return row


def update_exchange(exchange_id: int, draft: ExchangeDraft) -> OldGoldExchange:
    """Edit any exchange row in place; its bill link is left as it is."""
    row = get_exchange(exchange_id)
    validate_exchange_drafts([replace(draft, id=None)], set())
    _apply_draft(row, draft)
    commit_or_fail("old gold exchange", "exchange")
    return row


def delete_exchange(exchange_id: int) -> None:
    row = get_exchange(exchange_id)
    db.session.delete(row)
    commit_or_fail("old gold exchange", "exchange")


def detach_exchange(exchange_id: int) -> OldGoldExchange:
    """Clear the bill link, turning the row into a standalone exchange."""
    row = get_exchange(exchange_id)
    row.bill_id = None
    commit_or_fail("old gold exchange", "exchange")
    return row
