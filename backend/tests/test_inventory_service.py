"""
Inventory maintenance tests.

Verifies:
- Search matches item name or barcode, ignoring case
- Partial updates leave untouched fields alone
- Barcodes stay unique across edits
- Deleting a template leaves existing bills intact
"""

import pytest

from conftest import STAFF_ID, item_payload
from goldbook.models import BillItem, Item
from goldbook.services.inventory_service import (
    InventoryError,
    create_item,
    delete_item,
    get_item,
    list_items,
    lookup_item_by_barcode,
    update_item,
)
from goldbook.services.transaction_service import TransactionDraft, create_transaction
from goldbook.validation import ValidationError


@pytest.fixture
def stock(db_session):
    return [
        create_item({"barcode": "AM-R-001", "item_name": "Plain Ring", "weight_grams": "3.5"}),
        create_item({"barcode": "AM-C-001", "item_name": "Rope Chain", "weight_grams": "12"}),
        create_item({"barcode": "AM-S-001", "item_name": "Anklet", "metal_type": "silver_92", "stock_status": "sold"}),
    ]


class TestListItems:
    def test_newest_first(self, stock):
        items, total = list_items()
        assert total == 3
        assert [i.barcode for i in items] == ["AM-S-001", "AM-C-001", "AM-R-001"]

    def test_search_by_name_ignores_case(self, stock):
        items, total = list_items(search="chain")
        assert total == 1
        assert items[0].item_name == "Rope Chain"

    def test_search_by_barcode(self, stock):
        items, _ = list_items(search="am-r")
        assert [i.barcode for i in items] == ["AM-R-001"]

    def test_filter_by_stock_status(self, stock):
        items, total = list_items(stock_status="sold")
        assert total == 1
        assert items[0].barcode == "AM-S-001"

    def test_unknown_stock_status(self, stock):
        with pytest.raises(ValidationError):
            list_items(stock_status="lost")

    def test_paging(self, stock):
        items, total = list_items(limit=2, offset=2)
        assert total == 3
        assert len(items) == 1


class TestUpdateItem:
    def test_partial_update(self, stock):
        ring = stock[0]
        update_item(ring.id, {"weight_grams": "3.75", "stock_status": "reserved"})

        item = get_item(ring.id)
        assert item.weight_mg == 3750
        assert item.stock_status == "reserved"
        assert item.item_name == "Plain Ring"
        assert item.barcode == "AM-R-001"

    def test_keeping_own_barcode_allowed(self, stock):
        item = update_item(stock[0].id, {"barcode": "AM-R-001", "item_name": "Band"})
        assert item.item_name == "Band"

    def test_barcode_taken_by_another_item(self, stock):
        with pytest.raises(ValidationError):
            update_item(stock[0].id, {"barcode": "AM-C-001"})
        assert lookup_item_by_barcode("AM-C-001").id == stock[1].id

    def test_name_cannot_be_blanked(self, stock):
        with pytest.raises(ValidationError):
            update_item(stock[0].id, {"item_name": "  "})

    def test_missing_item(self, db_session):
        with pytest.raises(InventoryError):
            update_item(999, {"item_name": "Ghost"})


class TestDeleteItem:
    def test_delete(self, stock, db_session):
        delete_item(stock[1].id)
        assert db_session.query(Item).count() == 2
        assert lookup_item_by_barcode("AM-C-001") is None

    def test_missing_item(self, db_session):
        with pytest.raises(InventoryError):
            delete_item(999)

    def test_billed_lines_survive(self, stock, db_session, rates, customer):
        draft = TransactionDraft.from_payload({
            "customer_id": customer.id,
            "sale_type": "non_gst",
            "items": [item_payload("Plain Ring", "3.5", 20_000, barcode="AM-R-001")],
        })
        bill = create_transaction(draft, staff_id=STAFF_ID).bill

        delete_item(stock[0].id)
        assert db_session.query(BillItem).filter_by(bill_id=bill.id).count() == 1
