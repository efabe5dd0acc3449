"""Debounced, latest-request-wins barcode lookup."""

import pytest

from goldbook.services.inventory_service import BarcodeLookupSession, create_item, lookup_item_by_barcode
from goldbook.validation import ValidationError


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms / 1000


@pytest.fixture
def clock():
    return FakeClock()


class TestDebounce:
    def test_not_due_before_quiet_period(self, clock):
        session = BarcodeLookupSession(debounce_ms=300, clock=clock, lookup=lambda code: code)
        session.keystroke("AM1")
        clock.advance(299)
        assert not session.due()
        clock.advance(2)
        assert session.due()

    def test_keystroke_restarts_quiet_period(self, clock):
        session = BarcodeLookupSession(debounce_ms=300, clock=clock, lookup=lambda code: code)
        session.keystroke("AM")
        clock.advance(200)
        session.keystroke("AM1")
        clock.advance(200)
        assert not session.due()

    def test_same_value_not_fired_twice(self, clock):
        session = BarcodeLookupSession(debounce_ms=300, clock=clock, lookup=lambda code: code)
        session.keystroke("AM1")
        clock.advance(301)
        session.start()
        assert not session.due()

    def test_empty_field_never_due(self, clock):
        session = BarcodeLookupSession(clock=clock)
        session.keystroke("")
        clock.advance(1000)
        assert not session.due()


class TestLatestRequestWins:
    def test_stale_response_discarded(self, clock):
        session = BarcodeLookupSession(clock=clock, lookup=lambda code: f"item:{code}")
        session.keystroke("AM1")
        first_seq, first_code = session.start()
        session.keystroke("AM12")
        second_seq, second_code = session.start()

        # responses arrive out of order
        assert session.run(second_seq, second_code) == "item:AM12"
        assert session.run(first_seq, first_code) is None

    def test_sequence_numbers_increase(self, clock):
        session = BarcodeLookupSession(clock=clock)
        session.keystroke("A")
        a, _ = session.start()
        session.keystroke("AB")
        b, _ = session.start()
        assert b > a
        assert session.latest_sequence == b
        assert session.is_current(b) and not session.is_current(a)

    def test_start_without_value(self, clock):
        with pytest.raises(ValidationError):
            BarcodeLookupSession(clock=clock).start()


class TestItemLookup:
    def test_hit_and_miss(self, db_session):
        create_item({"barcode": "AM-R-001", "item_name": "Ring", "weight_grams": "3.5", "making_charge_paise": 20_000})
        assert lookup_item_by_barcode("AM-R-001").weight_mg == 3500
        assert lookup_item_by_barcode("NOPE") is None
        assert lookup_item_by_barcode("") is None

    def test_duplicate_barcode_rejected(self, db_session):
        create_item({"barcode": "AM-R-001", "item_name": "Ring"})
        with pytest.raises(ValidationError):
            create_item({"barcode": "AM-R-001", "item_name": "Other"})
