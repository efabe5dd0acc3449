from __future__ import annotations

from ..extensions import db
from goldbook.time_utils import to_utc_z
from goldbook.validation import mg_to_grams


class Item(db.Model):
    """Inventory item template; the barcode lookup pre-fills bill lines from it."""
    __tablename__ = "items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    barcode = db.Column(db.String(64), nullable=False, unique=True, index=True)
    item_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    metal_type = db.Column(db.String(32), nullable=False, default="gold")
    purity = db.Column(db.String(32), nullable=True)
    weight_mg = db.Column(db.Integer, nullable=True)
    making_charge_paise = db.Column(db.Integer, nullable=False, default=0)
    hsn_code = db.Column(db.String(16), nullable=True)
    stock_status = db.Column(db.String(16), nullable=False, default="in_stock")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "barcode": self.barcode,
            "item_name": self.item_name,
            "category": self.category,
            "metal_type": self.metal_type,
            "purity": self.purity,
            "weight_mg": self.weight_mg,
            "weight_grams": mg_to_grams(self.weight_mg),
            "making_charge_paise": self.making_charge_paise,
            "hsn_code": self.hsn_code,
            "stock_status": self.stock_status,
            "created_at": to_utc_z(self.created_at),
        }
