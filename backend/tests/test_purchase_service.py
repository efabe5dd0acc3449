"""Purchase slip tests."""

import pytest

from conftest import STAFF_ID
from goldbook.metals import METAL_GOLD_916, metal_type_for_purity
from goldbook.services.purchase_service import PurchaseError, create_purchase, get_purchase
from goldbook.services.rate_service import publish_rate
from goldbook.time_utils import today
from goldbook.validation import ValidationError


class TestPurityMapping:
    @pytest.mark.parametrize(
        "purity,expected",
        [
            ("22K", "gold_916"),
            ("91.6%", "gold_916"),
            ("18k", "gold_750"),
            ("92.5", "silver_92"),
            ("70%", "silver_70"),
            ("24k", "gold"),
            (None, "gold"),
        ],
    )
    def test_purity_to_metal(self, purity, expected):
        assert metal_type_for_purity(purity) == expected


class TestCreatePurchase:
    def test_slip_with_gst_split(self, db_session, rates, customer):
        purchase = create_purchase({
            "customer_id": customer.id,
            "items": [{"weight_grams": "10", "hsn_code": "7113", "code": "OG-1"}],
        }, staff_id=STAFF_ID)

        assert purchase.bill_no == f"AM-PURCHASE-{today().strftime('%Y%m%d')}-0001"
        assert purchase.subtotal_paise == 6_000_000
        assert purchase.cgst_paise == 540_000
        assert purchase.sgst_paise == 540_000
        assert purchase.grand_total_paise == 7_080_000
        assert purchase.staff_id == STAFF_ID
        assert purchase.items[0].metal_type == "gold"

    def test_purity_selects_rate(self, db_session, rates, customer):
        publish_rate(METAL_GOLD_916, 550_000, today())
        purchase = create_purchase({
            "customer_id": customer.id,
            "items": [{"weight_grams": "2", "purity": "22k"}],
        }, staff_id=STAFF_ID)
        assert purchase.items[0].metal_type == METAL_GOLD_916
        assert purchase.items[0].rate_paise == 550_000
        assert purchase.items[0].amount_paise == 1_100_000

    def test_explicit_rate_wins(self, db_session, rates, customer):
        purchase = create_purchase({
            "customer_id": customer.id,
            "items": [{"weight_grams": "1", "rate_paise": 500_000}],
        }, staff_id=STAFF_ID)
        assert purchase.items[0].rate_paise == 500_000

    def test_missing_rate_rejected(self, db_session, customer):
        with pytest.raises(ValidationError) as exc:
            create_purchase({
                "customer_id": customer.id,
                "items": [{"weight_grams": "1", "purity": "70%"}],
            }, staff_id=STAFF_ID)
        assert exc.value.details[0]["field"] == "rate_paise"

    def test_requires_items(self, db_session, customer):
        with pytest.raises(ValidationError):
            create_purchase({"customer_id": customer.id, "items": []}, staff_id=STAFF_ID)

    def test_get_missing(self, db_session):
        with pytest.raises(PurchaseError):
            get_purchase(999)
