"""Legacy exchange notes codec."""

from types import SimpleNamespace

from goldbook.services.exchange_notes import (
    DEFAULT_PARTICULARS,
    decode_exchange_notes,
    encode_exchange_notes,
    resolve_particulars_and_hsn,
)


class TestNotesCodec:
    def test_encode_both(self):
        assert encode_exchange_notes("Old chain", "7113") == "Description: Old chain | HSN Code: 7113"

    def test_encode_omits_empty_clause(self):
        assert encode_exchange_notes("Old chain", None) == "Description: Old chain"
        assert encode_exchange_notes("  ", "7113") == "HSN Code: 7113"
        assert encode_exchange_notes(None, "") is None

    def test_round_trip(self):
        notes = encode_exchange_notes("Broken bangle", "711319")
        assert decode_exchange_notes(notes) == ("Broken bangle", "711319")

    def test_decode_defaults(self):
        assert decode_exchange_notes(None) == (DEFAULT_PARTICULARS, "7113")
        assert decode_exchange_notes("") == ("Old Gold Exchange", "7113")

    def test_decode_missing_hsn_clause(self):
        assert decode_exchange_notes("Description: Coin") == ("Coin", "7113")

    def test_decode_free_text_uses_defaults(self):
        assert decode_exchange_notes("customer brought two rings") == (DEFAULT_PARTICULARS, "7113")


class TestResolveParticulars:
    def test_structured_columns_win(self):
        row = SimpleNamespace(particulars="Chain", hsn_code="7114", notes="Description: Ring | HSN Code: 7113")
        assert resolve_particulars_and_hsn(row) == ("Chain", "7114")

    def test_legacy_row_decodes_notes(self):
        row = SimpleNamespace(particulars=None, hsn_code=None, notes="Description: Ring | HSN Code: 711319")
        assert resolve_particulars_and_hsn(row) == ("Ring", "711319")
