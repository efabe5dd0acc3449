# Overview: Service-layer operations for inventory items and debounced barcode lookup.

from __future__ import annotations

import time

from sqlalchemy import or_

from ..extensions import db
from ..metals import METAL_GOLD, require_metal_type
from ..models import Item
from ..validation import ValidationError, clean_text, parse_paise, parse_weight_mg, require_text
from .persistence import commit_or_fail


STOCK_STATUSES = ("in_stock", "reserved", "sold", "returned")


class InventoryError(Exception):
    """Raised for inventory lookups that name a missing item."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def lookup_item_by_barcode(barcode: str | None) -> Item | None:
    """Item template for a barcode, or None when nothing matches."""
    code = (barcode or "").strip()
    if not code:
        return None
    return db.session.query(Item).filter_by(barcode=code).first()


def get_item(item_id: int) -> Item:
    item = db.session.get(Item, item_id)
    if not item:
        raise InventoryError("Item not found", details={"item_id": item_id})
    return item


def list_items(
    *,
    search: str | None = None,
    stock_status: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Item], int]:
    """
    Newest items first.

    search matches a substring of the item name or the barcode, ignoring case.
    """
    query = db.session.query(Item)
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(Item.item_name.ilike(pattern), Item.barcode.ilike(pattern)))
    if stock_status:
        query = query.filter(Item.stock_status == _require_stock_status(stock_status))

    total = query.count()

    offset = max(offset, 0)
    limit = min(max(limit, 1), 500)

    items = query.order_by(Item.created_at.desc(), Item.id.desc()).offset(offset).limit(limit).all()
    return items, total


def _require_stock_status(value) -> str:
    status = value.strip().lower() if isinstance(value, str) else ""
    if status not in STOCK_STATUSES:
        raise ValidationError(f"Invalid stock_status: {value}. Must be one of {STOCK_STATUSES}")
    return status


def _claim_barcode(barcode: str, item_id: int | None = None) -> str:
    holder = lookup_item_by_barcode(barcode)
    if holder is not None and holder.id != item_id:
        raise ValidationError(f"Barcode {barcode} already exists")
    return barcode


def create_item(data: dict) -> Item:
    barcode = _claim_barcode(require_text(data.get("barcode"), "barcode", max_length=64))

    item = Item(
        barcode=barcode,
        item_name=require_text(data.get("item_name"), "item_name", max_length=255),
        category=clean_text(data.get("category"), max_length=64, field="category"),
        metal_type=require_metal_type(data.get("metal_type") or METAL_GOLD),
        purity=clean_text(data.get("purity"), max_length=32, field="purity"),
        weight_mg=parse_weight_mg(data.get("weight_grams"), required=False),
        making_charge_paise=parse_paise(data.get("making_charge_paise"), "making_charge_paise", required=False) or 0,
        hsn_code=clean_text(data.get("hsn_code"), max_length=16, field="hsn_code"),
        stock_status=_require_stock_status(data.get("stock_status") or "in_stock"),
    )
    db.session.add(item)
    commit_or_fail("item", "item")
    return item


def update_item(item_id: int, data: dict) -> Item:
    """Partial update: only keys present in data are changed."""
    item = get_item(item_id)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    if "barcode" in data:
        item.barcode = _claim_barcode(require_text(data["barcode"], "barcode", max_length=64), item.id)
    if "item_name" in data:
        item.item_name = require_text(data["item_name"], "item_name", max_length=255)
    if "category" in data:
        item.category = clean_text(data["category"], max_length=64, field="category")
    if "metal_type" in data:
        item.metal_type = require_metal_type(data["metal_type"])
    if "purity" in data:
        item.purity = clean_text(data["purity"], max_length=32, field="purity")
    if "weight_grams" in data:
        item.weight_mg = parse_weight_mg(data["weight_grams"], required=False)
    if "making_charge_paise" in data:
        item.making_charge_paise = parse_paise(data["making_charge_paise"], "making_charge_paise", required=False) or 0
    if "hsn_code" in data:
        item.hsn_code = clean_text(data["hsn_code"], max_length=16, field="hsn_code")
    if "stock_status" in data:
        item.stock_status = _require_stock_status(data["stock_status"])

    commit_or_fail("item", "item")
    return item


def delete_item(item_id: int) -> None:
    # Bill lines copy what they need from the template, so nothing points back here
    item = get_item(item_id)
    db.session.delete(item)
    commit_or_fail("item", "item")


class BarcodeLookupSession:
    """
    Debounced, latest-request-wins barcode lookup for one editing surface.

    keystroke() records the current field value; due() is True once the
    field has been quiet for debounce_ms. start() tags a lookup with a new
    sequence number, and complete() drops any response whose sequence number
    is no longer the latest one issued.
    """

    def __init__(self, debounce_ms: int = 300, clock=time.monotonic, lookup=lookup_item_by_barcode):
        self.debounce_ms = debounce_ms
        self._clock = clock
        self._lookup = lookup
        self._value: str | None = None
        self._last_keystroke: float | None = None
        self._issued = 0
        self._fired_value: str | None = None

    @property
    def latest_sequence(self) -> int:
        return self._issued

    def keystroke(self, value: str) -> None:
        self._value = value
        self._last_keystroke = self._clock()

    def due(self) -> bool:
        if not self._value or self._last_keystroke is None:
            return False
        if self._value == self._fired_value:
            return False
        elapsed_ms = (self._clock() - self._last_keystroke) * 1000
        return elapsed_ms >= self.debounce_ms

    def start(self) -> tuple[int, str]:
        """Issue a lookup for the current value; returns (sequence, barcode)."""
        if not self._value:
            raise ValidationError("No barcode entered")
        self._issued += 1
        self._fired_value = self._value
        return self._issued, self._value

    def is_current(self, sequence: int) -> bool:
        return sequence == self._issued

    def complete(self, sequence: int, result):
        """Result of lookup `sequence`, or None if a newer lookup was issued."""
        if not self.is_current(sequence):
            return None
        return result

    def run(self, sequence: int, barcode: str):
        return self.complete(sequence, self._lookup(barcode))
