from __future__ import annotations

from ..extensions import db
from goldbook.time_utils import to_utc_z
from goldbook.validation import mg_to_grams


class OldGoldExchange(db.Model):
    """
    Credit entry for customer-supplied scrap metal (weight x rate).

    bill_id is nullable: NULL is a standalone walk-in exchange. The link to a
    bill is weak, clearing it keeps the exchange record.

    particulars/hsn_code are the structured fields; notes keeps the legacy
    "Description: X | HSN Code: Y" text so older readers still work.
    """
    __tablename__ = "old_gold_exchanges"
    __table_args__ = (
        db.Index("ix_old_gold_exchanges_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=True, index=True)

    weight_mg = db.Column(db.Integer, nullable=False)
    metal_type = db.Column(db.String(32), nullable=False, default="gold")
    purity = db.Column(db.String(64), nullable=True)
    rate_paise = db.Column(db.Integer, nullable=False)
    total_value_paise = db.Column(db.Integer, nullable=False)

    particulars = db.Column(db.String(255), nullable=True)
    hsn_code = db.Column(db.String(16), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_staff_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    bill = db.relationship("Bill", backref=db.backref("exchanges", lazy=True, order_by="OldGoldExchange.id"))

    def to_dict(self) -> dict:
        from goldbook.services.exchange_notes import resolve_particulars_and_hsn

        particulars, hsn_code = resolve_particulars_and_hsn(self)
        return {
            "id": self.id,
            "bill_id": self.bill_id,
            "weight_mg": self.weight_mg,
            "weight_grams": mg_to_grams(self.weight_mg),
            "metal_type": self.metal_type,
            "purity": self.purity,
            "rate_paise": self.rate_paise,
            "total_value_paise": self.total_value_paise,
            "particulars": particulars,
            "hsn_code": hsn_code,
            "notes": self.notes,
            "created_by_staff_id": self.created_by_staff_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
