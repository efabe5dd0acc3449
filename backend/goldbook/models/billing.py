from __future__ import annotations

from ..extensions import db
from goldbook.time_utils import to_utc_z, to_iso_date
from goldbook.validation import mg_to_grams


class Bill(db.Model):
    """
    Sale bill: the parent document of one logical business transaction.

    Owns its line items, layaway payments and advance booking (deleted with
    the bill). Old-gold exchange rows only reference the bill and are
    detached, not deleted, when the bill goes away.

    bill_date and customer_id are fixed at creation. Totals may be
    recomputed while status is DRAFT; FINAL bills keep their line items.
    """
    __tablename__ = "bills"
    __table_args__ = (
        db.Index("ix_bills_customer_date", "customer_id", "bill_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bill_no = db.Column(db.String(64), nullable=False, unique=True, index=True)
    bill_date = db.Column(db.Date, nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    # SALE, ADVANCE_BOOKING, LAYAWAY
    bill_type = db.Column(db.String(32), nullable=False, default="SALE", index=True)
    # DRAFT, FINAL
    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)

    # gst, non_gst
    sale_type = db.Column(db.String(16), nullable=False, default="gst")
    # none, intrastate (CGST+SGST), interstate (IGST)
    tax_mode = db.Column(db.String(16), nullable=False, default="intrastate")

    # All amounts in paise
    subtotal_paise = db.Column(db.Integer, nullable=False, default=0)
    discount_paise = db.Column(db.Integer, nullable=False, default=0)
    cgst_paise = db.Column(db.Integer, nullable=False, default=0)
    sgst_paise = db.Column(db.Integer, nullable=False, default=0)
    igst_paise = db.Column(db.Integer, nullable=False, default=0)
    grand_total_paise = db.Column(db.Integer, nullable=False, default=0)

    # Subtotal pinned by the operator rather than summed from line items
    total_locked = db.Column(db.Boolean, nullable=False, default=False)

    created_by_staff_id = db.Column(db.Integer, nullable=True)
    updated_by_staff_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    finalized_at = db.Column(db.DateTime(timezone=True), nullable=True)

    customer = db.relationship("Customer", backref=db.backref("bills", lazy=True))
    items = db.relationship(
        "BillItem",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillItem.serial_no",
        lazy=True,
    )
    layaway_transactions = db.relationship(
        "LayawayTransaction",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="LayawayTransaction.id",
        lazy=True,
    )
    advance_booking = db.relationship(
        "AdvanceBooking",
        back_populates="bill",
        cascade="all, delete-orphan",
        uselist=False,
    )

    @property
    def tax_paise(self) -> int:
        return (self.cgst_paise or 0) + (self.sgst_paise or 0) + (self.igst_paise or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_no": self.bill_no,
            "bill_date": to_iso_date(self.bill_date),
            "customer_id": self.customer_id,
            "bill_type": self.bill_type,
            "status": self.status,
            "sale_type": self.sale_type,
            "tax_mode": self.tax_mode,
            "subtotal_paise": self.subtotal_paise,
            "discount_paise": self.discount_paise,
            "cgst_paise": self.cgst_paise,
            "sgst_paise": self.sgst_paise,
            "igst_paise": self.igst_paise,
            "grand_total_paise": self.grand_total_paise,
            "total_locked": self.total_locked,
            "created_by_staff_id": self.created_by_staff_id,
            "updated_by_staff_id": self.updated_by_staff_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "finalized_at": to_utc_z(self.finalized_at) if self.finalized_at else None,
        }


class BillItem(db.Model):
    """Individual line item on a bill: weight x rate + making charge."""
    __tablename__ = "bill_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)
    serial_no = db.Column(db.Integer, nullable=False)

    item_name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)
    metal_type = db.Column(db.String(32), nullable=False)
    purity = db.Column(db.String(32), nullable=True)
    hsn_code = db.Column(db.String(16), nullable=False, default="711319")

    weight_mg = db.Column(db.Integer, nullable=False)
    rate_paise = db.Column(db.Integer, nullable=False)
    making_charge_paise = db.Column(db.Integer, nullable=False, default=0)
    line_total_paise = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    bill = db.relationship("Bill", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_id": self.bill_id,
            "serial_no": self.serial_no,
            "item_name": self.item_name,
            "barcode": self.barcode,
            "metal_type": self.metal_type,
            "purity": self.purity,
            "hsn_code": self.hsn_code,
            "weight_mg": self.weight_mg,
            "weight_grams": mg_to_grams(self.weight_mg),
            "rate_paise": self.rate_paise,
            "making_charge_paise": self.making_charge_paise,
            "line_total_paise": self.line_total_paise,
            "created_at": to_utc_z(self.created_at),
        }


class AdvanceBooking(db.Model):
    """
    Reservation against a future delivery, secured by a partial advance.

    Invariant: 0 < advance_paise <= total_paise.
    """
    __tablename__ = "advance_bookings"
    __table_args__ = (
        db.CheckConstraint("advance_paise > 0", name="ck_advance_bookings_advance_positive"),
        db.CheckConstraint("advance_paise <= total_paise", name="ck_advance_bookings_advance_le_total"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, unique=True, index=True)

    booking_date = db.Column(db.Date, nullable=False)
    delivery_date = db.Column(db.Date, nullable=False)
    advance_paise = db.Column(db.Integer, nullable=False)
    total_paise = db.Column(db.Integer, nullable=False)
    item_description = db.Column(db.Text, nullable=True)
    customer_notes = db.Column(db.Text, nullable=True)

    # active, fulfilled, cancelled
    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    bill = db.relationship("Bill", back_populates="advance_booking")

    @property
    def amount_due_paise(self) -> int:
        return max(0, (self.total_paise or 0) - (self.advance_paise or 0))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_id": self.bill_id,
            "booking_date": to_iso_date(self.booking_date),
            "delivery_date": to_iso_date(self.delivery_date),
            "advance_paise": self.advance_paise,
            "total_paise": self.total_paise,
            "amount_due_paise": self.amount_due_paise,
            "item_description": self.item_description,
            "customer_notes": self.customer_notes,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LayawayTransaction(db.Model):
    """
    Append-only layaway payment record.

    IMMUTABLE: rows are never updated; they only disappear with their bill.
    """
    __tablename__ = "layaway_transactions"
    __table_args__ = (
        db.CheckConstraint("amount_paise > 0", name="ck_layaway_transactions_amount_positive"),
        db.Index("ix_layaway_transactions_bill_date", "bill_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)

    payment_date = db.Column(db.Date, nullable=False)
    amount_paise = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    reference_number = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_staff_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    bill = db.relationship("Bill", back_populates="layaway_transactions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_id": self.bill_id,
            "payment_date": to_iso_date(self.payment_date),
            "amount_paise": self.amount_paise,
            "payment_method": self.payment_method,
            "reference_number": self.reference_number,
            "notes": self.notes,
            "created_by_staff_id": self.created_by_staff_id,
            "created_at": to_utc_z(self.created_at),
        }
