from __future__ import annotations

from ..extensions import db
from goldbook.time_utils import to_utc_z, to_iso_date
from goldbook.validation import mg_to_grams


class PurchaseBill(db.Model):
    """Pink slip: old metal bought from a customer or vendor."""
    __tablename__ = "purchase_bills"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    bill_no = db.Column(db.String(64), nullable=False, unique=True, index=True)
    purchase_date = db.Column(db.Date, nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, nullable=False)

    subtotal_paise = db.Column(db.Integer, nullable=False, default=0)
    cgst_paise = db.Column(db.Integer, nullable=False, default=0)
    sgst_paise = db.Column(db.Integer, nullable=False, default=0)
    grand_total_paise = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer")
    items = db.relationship(
        "PurchaseItem",
        back_populates="purchase_bill",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_no": self.bill_no,
            "purchase_date": to_iso_date(self.purchase_date),
            "customer_id": self.customer_id,
            "staff_id": self.staff_id,
            "subtotal_paise": self.subtotal_paise,
            "cgst_paise": self.cgst_paise,
            "sgst_paise": self.sgst_paise,
            "grand_total_paise": self.grand_total_paise,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_bill_id = db.Column(db.Integer, db.ForeignKey("purchase_bills.id"), nullable=False, index=True)

    hsn_code = db.Column(db.String(16), nullable=True)
    code = db.Column(db.String(64), nullable=True)
    purity = db.Column(db.String(32), nullable=True)
    metal_type = db.Column(db.String(32), nullable=False)
    weight_mg = db.Column(db.Integer, nullable=False)
    rate_paise = db.Column(db.Integer, nullable=False)
    amount_paise = db.Column(db.Integer, nullable=False)

    purchase_bill = db.relationship("PurchaseBill", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_bill_id": self.purchase_bill_id,
            "hsn_code": self.hsn_code,
            "code": self.code,
            "purity": self.purity,
            "metal_type": self.metal_type,
            "weight_mg": self.weight_mg,
            "weight_grams": mg_to_grams(self.weight_mg),
            "rate_paise": self.rate_paise,
            "amount_paise": self.amount_paise,
        }
