"""Total lock state machine."""

import pytest

from goldbook.services.total_lock import STATE_AUTO, STATE_LOCKED, TotalLock
from goldbook.services.valuation import line_value
from goldbook.validation import ValidationError


RING = line_value(3500, 600_000, 20_000)     # ₹21,200
COIN = line_value(1000, 600_000, 0)          # ₹6,000
CHAIN = line_value(2000, 600_000, 50_000)    # ₹12,500


class TestAutoMode:
    def test_total_follows_items(self):
        lock = TotalLock()
        lock.add_item(RING)
        lock.add_item(COIN)
        assert lock.state == STATE_AUTO
        assert lock.total == 2_720_000

    def test_remove_recomputes(self):
        lock = TotalLock([RING, COIN])
        lock.remove_item(0)
        assert lock.total == COIN

    def test_remove_out_of_range(self):
        with pytest.raises(IndexError):
            TotalLock([RING]).remove_item(3)


class TestLockedMode:
    def test_scenario_negotiated_total_survives_new_item(self):
        lock = TotalLock()
        lock.add_item(RING)
        lock.add_item(COIN)
        assert lock.total == 2_720_000

        lock.set_manual_total(2_500_000)
        assert lock.state == STATE_LOCKED

        lock.add_item(CHAIN)
        assert lock.total == 2_500_000
        assert lock.items_total == 2_720_000 + CHAIN

    def test_remove_keeps_pinned_total(self):
        lock = TotalLock([RING, COIN])
        lock.set_manual_total(2_500_000)
        lock.remove_item(1)
        assert lock.total == 2_500_000

    def test_unlock_recomputes_immediately(self):
        lock = TotalLock([RING, COIN])
        lock.set_manual_total(2_500_000)
        lock.add_item(CHAIN)

        assert lock.unlock() == RING + COIN + CHAIN
        assert lock.state == STATE_AUTO
        assert lock.to_dict()["pinned_total_paise"] is None

    def test_negative_total_rejected(self):
        with pytest.raises(ValidationError):
            TotalLock([RING]).set_manual_total(-1)


class TestPersistedTotals:
    def test_loaded_bill_starts_locked(self):
        lock = TotalLock.from_persisted(2_500_000, [RING, COIN])
        assert lock.is_locked
        assert lock.total == 2_500_000
        lock.add_item(CHAIN)
        assert lock.total == 2_500_000

    def test_from_draft_locked_requires_total(self):
        with pytest.raises(ValidationError):
            TotalLock.from_draft([RING], locked=True, total_paise=None)

    def test_from_draft_auto(self):
        lock = TotalLock.from_draft([RING, COIN], locked=False, total_paise=123)
        assert lock.total == 2_720_000
