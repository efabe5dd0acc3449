"""
Transaction assembler tests.

Verifies:
- Validation gate collects every problem before any write
- Bill, items, exchanges, booking and layaway are written together
- A failing stage rolls back every stage and names itself
- Editing keeps line rates, exchange ids and the negotiated total
"""

from datetime import timedelta

import pytest

from conftest import SILVER_RATE_PAISE, STAFF_ID, exchange_payload, item_payload
from goldbook.extensions import db
from goldbook.models import AdvanceBooking, Bill, BillItem, Customer, LayawayTransaction, OldGoldExchange
from goldbook.services import exchange_service, transaction_service
from goldbook.services.bill_service import (
    BILL_STATUS_DRAFT,
    BILL_STATUS_FINAL,
    BILL_TYPE_ADVANCE_BOOKING,
    BILL_TYPE_LAYAWAY,
    BILL_TYPE_SALE,
    load_for_edit,
)
from goldbook.services.persistence import PersistenceFailure
from goldbook.services.transaction_service import (
    TransactionDraft,
    create_transaction,
    prepare_transaction,
    update_transaction,
)
from goldbook.time_utils import today
from goldbook.validation import ValidationError


def _draft(customer, **overrides):
    payload = {
        "customer_id": customer.id,
        "sale_type": "non_gst",
        "items": [item_payload("Ring", "3.5", 20_000), item_payload("Coin", "1.0", 0)],
    }
    payload.update(overrides)
    return TransactionDraft.from_payload(payload)


def _edit_payload(bill_id: int) -> dict:
    """Round-trip the load-for-edit draft back into a save payload."""
    loaded = load_for_edit(bill_id)
    return {
        "customer_id": loaded["customer_id"],
        "sale_type": loaded["sale_type"],
        "tax_mode": loaded["tax_mode"],
        "discount_paise": loaded["discount_paise"],
        "total_locked": loaded["total_locked"],
        "total_paise": loaded["total_paise"],
        "items": loaded["items"],
        "exchanges": [
            {
                "id": ex["id"],
                "weight_grams": ex["weight_grams"],
                "rate_paise": ex["rate_paise"],
                "metal_type": ex["metal_type"],
                "particulars": ex["particulars"],
                "hsn_code": ex["hsn_code"],
            }
            for ex in loaded["exchanges"]
        ],
        "advance": loaded["advance"],
        "layaway": loaded["layaway"],
    }


# =============================================================================
# VALIDATION GATE
# =============================================================================


class TestValidationGate:
    def test_requires_customer(self, db_session, rates):
        draft = TransactionDraft.from_payload({"items": [item_payload()]})
        with pytest.raises(ValidationError) as exc:
            prepare_transaction(draft)
        assert exc.value.details[0]["field"] == "customer_id"

    def test_requires_items(self, db_session, rates, customer):
        with pytest.raises(ValidationError) as exc:
            prepare_transaction(_draft(customer, items=[]))
        assert any(d["field"] == "items" for d in exc.value.details)

    def test_collects_every_line_problem(self, db_session, rates, customer):
        draft = _draft(customer, items=[
            item_payload("", "3.5"),
            item_payload("Bangle", "0"),
            item_payload("Anklet", "2", metal_type="silver_70"),
        ])
        with pytest.raises(ValidationError) as exc:
            prepare_transaction(draft)

        problems = {(d["index"], d["field"]) for d in exc.value.details}
        assert (0, "item_name") in problems
        assert (1, "weight_grams") in problems
        # silver_70 has no published rate
        assert (2, "rate_paise") in problems

    def test_manual_rate_rescues_unpublished_metal(self, db_session, rates, customer):
        draft = _draft(customer, items=[item_payload("Anklet", "2", 0, metal_type="silver_70", rate_paise=7_000)])
        prepared = prepare_transaction(draft)
        assert prepared.priced_items[0].rate_paise == 7_000
        assert prepared.priced_items[0].rate_source == "MANUAL"

    def test_no_writes_on_failure(self, db_session, rates, customer):
        draft = _draft(customer, items=[item_payload("Ring", "0")])
        with pytest.raises(ValidationError):
            create_transaction(draft, staff_id=STAFF_ID)
        assert db_session.query(Bill).count() == 0

    def test_advance_above_total_rejected(self, db_session, rates, customer):
        draft = _draft(customer, advance={
            "advance_paise": 3_000_000,
            "delivery_date": (today() + timedelta(days=10)).isoformat(),
        })
        with pytest.raises(ValidationError) as exc:
            prepare_transaction(draft)
        assert exc.value.details[0]["field"] == "advance_paise"

    def test_advance_requires_delivery_date(self, db_session, rates, customer):
        draft = _draft(customer, advance={"advance_paise": 500_000})
        with pytest.raises(ValidationError) as exc:
            prepare_transaction(draft)
        assert any(d["field"] == "delivery_date" for d in exc.value.details)

    def test_locked_total_must_be_positive(self, db_session, rates, customer):
        draft = _draft(customer, total_locked=True, total_paise=0)
        with pytest.raises(ValidationError):
            prepare_transaction(draft)

    def test_layaway_initial_payment_above_total_rejected(self, db_session, rates, customer):
        draft = _draft(customer, layaway={"initial_payment_paise": 9_000_000})
        with pytest.raises(ValidationError):
            prepare_transaction(draft)

    def test_layaway_payment_method_must_be_text(self, db_session, rates, customer):
        draft = _draft(customer, layaway={"initial_payment_paise": 100, "payment_method": 5})
        with pytest.raises(ValidationError) as exc:
            prepare_transaction(draft)
        assert any(d["field"] == "payment_method" for d in exc.value.details)

    @pytest.mark.parametrize("flag", ["total_locked", "finalize"])
    def test_flags_reject_unknown_values(self, db_session, rates, customer, flag):
        with pytest.raises(ValidationError) as exc:
            _draft(customer, **{flag: "maybe"})
        assert exc.value.details[0]["field"] == flag

    def test_unknown_exchange_metal_rejected(self, db_session, rates, customer):
        with pytest.raises(ValidationError):
            _draft(customer, exchanges=[exchange_payload("2.0", None, metal_type="platinum")])

    def test_advance_and_layaway_together_rejected(self, db_session, rates, customer):
        draft = _draft(
            customer,
            advance={"advance_paise": 100, "delivery_date": today().isoformat()},
            layaway={"initial_payment_paise": 100},
        )
        with pytest.raises(ValidationError) as exc:
            prepare_transaction(draft)
        assert any(d["field"] == "bill_type" for d in exc.value.details)


# =============================================================================
# CREATE
# =============================================================================


class TestCreateTransaction:
    def test_auto_total_from_items(self, db_session, rates, customer):
        result = create_transaction(_draft(customer), staff_id=STAFF_ID)

        bill = result.bill
        assert bill.bill_type == BILL_TYPE_SALE
        assert bill.subtotal_paise == 2_720_000
        assert bill.grand_total_paise == 2_720_000
        assert bill.total_locked is False
        assert bill.created_by_staff_id == STAFF_ID
        assert bill.bill_no == f"AM-{today().strftime('%Y%m%d')}-0001"
        assert [item.serial_no for item in bill.items] == [1, 2]
        assert bill.items[0].hsn_code == "711319"
        assert bill.items[0].rate_paise == 600_000

    def test_bill_numbers_increment(self, db_session, rates, customer):
        first = create_transaction(_draft(customer), staff_id=STAFF_ID)
        second = create_transaction(_draft(customer), staff_id=STAFF_ID)
        assert first.bill.bill_no.endswith("-0001")
        assert second.bill.bill_no.endswith("-0002")

    def test_gst_sale(self, db_session, rates, customer):
        result = create_transaction(_draft(customer, sale_type="gst"), staff_id=STAFF_ID)
        assert result.bill.cgst_paise == 40_800
        assert result.bill.sgst_paise == 40_800
        assert result.bill.grand_total_paise == 2_801_600

    def test_locked_total_kept(self, db_session, rates, customer):
        result = create_transaction(
            _draft(customer, total_locked=True, total_paise=2_500_000),
            staff_id=STAFF_ID,
        )
        assert result.bill.subtotal_paise == 2_500_000
        assert result.bill.total_locked is True

    def test_new_customer_created_in_same_unit(self, db_session, rates):
        draft = TransactionDraft.from_payload({
            "new_customer": {"name": "Meena", "phone": "98400 55555"},
            "sale_type": "non_gst",
            "items": [item_payload()],
        })
        result = create_transaction(draft, staff_id=STAFF_ID)
        assert result.customer.id is not None
        assert result.customer.phone == "9840055555"
        assert result.bill.customer_id == result.customer.id

    def test_exchanges_attached(self, db_session, rates, customer):
        draft = _draft(customer, exchanges=[exchange_payload("2.0", 550_000), exchange_payload("1.0", None)])
        result = create_transaction(draft, staff_id=STAFF_ID)

        rows = db_session.query(OldGoldExchange).filter_by(bill_id=result.bill.id).order_by(OldGoldExchange.id).all()
        assert [r.total_value_paise for r in rows] == [1_100_000, 600_000]
        assert rows[1].rate_paise == 600_000
        assert len(result.exchanges.inserted) == 2

    def test_advance_booking(self, db_session, rates, customer):
        delivery = today() + timedelta(days=14)
        draft = _draft(customer, advance={
            "advance_paise": 500_000,
            "delivery_date": delivery.isoformat(),
            "item_description": "Temple necklace",
        })
        result = create_transaction(draft, staff_id=STAFF_ID)

        assert result.bill.bill_type == BILL_TYPE_ADVANCE_BOOKING
        booking = db_session.query(AdvanceBooking).filter_by(bill_id=result.bill.id).one()
        assert booking.advance_paise == 500_000
        assert booking.total_paise == 2_720_000
        assert booking.amount_due_paise == 2_220_000
        assert booking.status == "active"
        assert booking.delivery_date == delivery

    def test_layaway_with_initial_payment(self, db_session, rates, customer):
        draft = _draft(customer, layaway={"initial_payment_paise": 1_000_000, "payment_method": "upi"})
        result = create_transaction(draft, staff_id=STAFF_ID)

        assert result.bill.bill_type == BILL_TYPE_LAYAWAY
        payment = db_session.query(LayawayTransaction).filter_by(bill_id=result.bill.id).one()
        assert payment.amount_paise == 1_000_000
        assert payment.payment_method == "UPI"
        assert payment.created_by_staff_id == STAFF_ID

    def test_exchange_without_rate_priced_for_its_metal(self, db_session, rates, customer):
        draft = _draft(customer, exchanges=[exchange_payload("10", None, metal_type="silver_92")])
        result = create_transaction(draft, staff_id=STAFF_ID)

        row = db_session.query(OldGoldExchange).filter_by(bill_id=result.bill.id).one()
        assert row.rate_paise == SILVER_RATE_PAISE
        assert row.total_value_paise == 80_000

    def test_string_false_flags_are_false(self, db_session, rates, customer):
        draft = _draft(customer, total_locked="false", total_paise=100, finalize="0")
        result = create_transaction(draft, staff_id=STAFF_ID)

        assert result.bill.total_locked is False
        assert result.bill.subtotal_paise == 2_720_000
        assert result.bill.status == BILL_STATUS_DRAFT

    def test_string_true_flag_locks(self, db_session, rates, customer):
        draft = _draft(customer, total_locked="true", total_paise=2_500_000)
        result = create_transaction(draft, staff_id=STAFF_ID)
        assert result.bill.total_locked is True
        assert result.bill.subtotal_paise == 2_500_000

    def test_finalize_on_create(self, db_session, rates, customer):
        result = create_transaction(_draft(customer, finalize=True), staff_id=STAFF_ID)
        assert result.bill.status == BILL_STATUS_FINAL
        assert result.bill.finalized_at is not None


# =============================================================================
# ATOMIC UNIT OF WORK
# =============================================================================


class TestAtomicSave:
    def test_failure_in_exchange_stage_rolls_back_everything(self, db_session, rates, monkeypatch):
        def broken_reconcile(bill_id, drafts, *, staff_id=None, tracker=None):
            tracker.at(0)
            db.session.add(OldGoldExchange(bill_id=bill_id, weight_mg=None, rate_paise=1, total_value_paise=1))
            db.session.flush()

        monkeypatch.setattr(transaction_service, "reconcile_bill_exchanges", broken_reconcile)

        draft = TransactionDraft.from_payload({
            "new_customer": {"name": "Meena", "phone": "9840055555"},
            "sale_type": "non_gst",
            "items": [item_payload()],
            "exchanges": [exchange_payload()],
        })
        with pytest.raises(PersistenceFailure) as exc:
            create_transaction(draft, staff_id=STAFF_ID)

        assert exc.value.stage == "exchanges"
        assert exc.value.index == 0
        assert db_session.query(Customer).count() == 0
        assert db_session.query(Bill).count() == 0
        assert db_session.query(BillItem).count() == 0

    def test_failing_exchange_row_reports_its_index(self, db_session, rates, customer, monkeypatch):
        apply_draft = exchange_service._apply_draft

        def apply_then_break(row, draft):
            apply_draft(row, draft)
            if draft.particulars == "broken":
                row.weight_mg = None

        monkeypatch.setattr(exchange_service, "_apply_draft", apply_then_break)

        draft = _draft(customer, exchanges=[
            exchange_payload("2.0"),
            exchange_payload("1.0", particulars="broken"),
            exchange_payload("3.0"),
        ])
        with pytest.raises(PersistenceFailure) as exc:
            create_transaction(draft, staff_id=STAFF_ID)

        assert exc.value.stage == "exchanges"
        assert exc.value.index == 1
        assert db_session.query(OldGoldExchange).count() == 0


# =============================================================================
# EDIT
# =============================================================================


class TestUpdateTransaction:
    def test_load_for_edit_starts_locked(self, db_session, rates, customer):
        result = create_transaction(_draft(customer), staff_id=STAFF_ID)
        loaded = load_for_edit(result.bill.id)
        assert loaded["total_locked"] is True
        assert loaded["total_lock"]["state"] == "LOCKED"
        assert loaded["total_paise"] == 2_720_000

    def test_resave_unchanged_is_idempotent(self, db_session, rates, customer):
        created = create_transaction(
            _draft(customer, exchanges=[exchange_payload()]),
            staff_id=STAFF_ID,
        )
        bill_id = created.bill.id
        item_ids = sorted(item.id for item in created.bill.items)

        payload = _edit_payload(bill_id)
        first = update_transaction(bill_id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
        second = update_transaction(bill_id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)

        assert first.exchanges.inserted == [] and first.exchanges.deleted == []
        assert second.exchanges.inserted == [] and second.exchanges.deleted == []
        assert db_session.query(OldGoldExchange).filter_by(bill_id=bill_id).count() == 1
        assert sorted(item.id for item in db_session.get(Bill, bill_id).items) == item_ids

    def test_exchange_metal_survives_edit(self, db_session, rates, customer):
        created = create_transaction(
            _draft(customer, exchanges=[exchange_payload("10", None, metal_type="silver_92")]),
            staff_id=STAFF_ID,
        )
        payload = _edit_payload(created.bill.id)
        assert payload["exchanges"][0]["metal_type"] == "silver_92"

        update_transaction(created.bill.id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
        row = db_session.query(OldGoldExchange).filter_by(bill_id=created.bill.id).one()
        assert row.metal_type == "silver_92"
        assert row.rate_paise == SILVER_RATE_PAISE

    def test_item_keeps_original_rate_after_rate_change(self, db_session, rates, customer):
        from goldbook.services.rate_service import publish_rate

        created = create_transaction(_draft(customer), staff_id=STAFF_ID)
        publish_rate("gold", 700_000, today())

        payload = _edit_payload(created.bill.id)
        result = update_transaction(created.bill.id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
        assert [item.rate_paise for item in result.bill.items] == [600_000, 600_000]

    def test_new_item_while_locked_keeps_total(self, db_session, rates, customer):
        created = create_transaction(
            _draft(customer, total_locked=True, total_paise=2_500_000),
            staff_id=STAFF_ID,
        )
        payload = _edit_payload(created.bill.id)
        payload["items"].append(item_payload("Chain", "2.0", 50_000))

        result = update_transaction(created.bill.id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
        assert len(result.bill.items) == 3
        assert result.bill.subtotal_paise == 2_500_000

    def test_unlock_recomputes(self, db_session, rates, customer):
        created = create_transaction(
            _draft(customer, total_locked=True, total_paise=2_500_000),
            staff_id=STAFF_ID,
        )
        payload = _edit_payload(created.bill.id)
        payload["total_locked"] = False

        result = update_transaction(created.bill.id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
        assert result.bill.subtotal_paise == 2_720_000
        assert result.bill.total_locked is False

    def test_removed_item_deleted(self, db_session, rates, customer):
        created = create_transaction(_draft(customer), staff_id=STAFF_ID)
        payload = _edit_payload(created.bill.id)
        payload["items"] = payload["items"][:1]
        payload["total_locked"] = False

        result = update_transaction(created.bill.id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
        assert len(result.bill.items) == 1
        assert db_session.query(BillItem).count() == 1

    def test_customer_cannot_change(self, db_session, rates, customer):
        other = Customer(name="Other", phone="9000000000")
        db_session.add(other)
        db_session.commit()

        created = create_transaction(_draft(customer), staff_id=STAFF_ID)
        payload = _edit_payload(created.bill.id)
        payload["customer_id"] = other.id

        with pytest.raises(ValidationError) as exc:
            update_transaction(created.bill.id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
        assert any(d["field"] == "customer_id" for d in exc.value.details)

    def test_finalized_bill_items_frozen(self, db_session, rates, customer):
        created = create_transaction(_draft(customer, finalize=True), staff_id=STAFF_ID)
        payload = _edit_payload(created.bill.id)
        payload["items"].append(item_payload("Chain", "2.0"))

        with pytest.raises(ValidationError) as exc:
            update_transaction(created.bill.id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
        assert any(d["field"] == "items" for d in exc.value.details)

    def test_finalized_bill_exchanges_still_editable(self, db_session, rates, customer):
        created = create_transaction(_draft(customer, finalize=True), staff_id=STAFF_ID)
        payload = _edit_payload(created.bill.id)
        payload["exchanges"] = [exchange_payload("1.5")]

        result = update_transaction(created.bill.id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
        assert len(result.exchanges.inserted) == 1

    def test_foreign_exchange_id_rejected(self, db_session, rates, customer):
        first = create_transaction(_draft(customer, exchanges=[exchange_payload()]), staff_id=STAFF_ID)
        second = create_transaction(_draft(customer), staff_id=STAFF_ID)
        foreign_id = first.exchanges.inserted[0]

        payload = _edit_payload(second.bill.id)
        payload["exchanges"] = [exchange_payload(id=foreign_id)]
        with pytest.raises(ValidationError) as exc:
            update_transaction(second.bill.id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
        assert any(d["field"] == "exchanges.id" for d in exc.value.details)
        assert db_session.get(OldGoldExchange, foreign_id).bill_id == first.bill.id

    def test_layaway_edit_rejects_initial_payment(self, db_session, rates, customer):
        created = create_transaction(
            _draft(customer, layaway={"initial_payment_paise": 100_000}),
            staff_id=STAFF_ID,
        )
        payload = _edit_payload(created.bill.id)
        payload["layaway"] = {"initial_payment_paise": 100_000}

        with pytest.raises(ValidationError):
            update_transaction(created.bill.id, TransactionDraft.from_payload(payload), staff_id=STAFF_ID)
