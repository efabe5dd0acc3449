from __future__ import annotations

from ..extensions import db
from goldbook.time_utils import to_utc_z, to_iso_date


class MetalRate(db.Model):
    """
    Published price per gram for one metal type on one business date.

    The operator enters the day's board rates each morning; older rows are
    kept so a day without a published rate can fall back to the last one.
    """
    __tablename__ = "metal_rates"
    __table_args__ = (
        db.UniqueConstraint("metal_type", "rate_date", name="uq_metal_rates_type_date"),
        db.Index("ix_metal_rates_type_date", "metal_type", "rate_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    metal_type = db.Column(db.String(32), nullable=False)
    rate_date = db.Column(db.Date, nullable=False)
    rate_paise = db.Column(db.Integer, nullable=False)

    created_by_staff_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "metal_type": self.metal_type,
            "rate_date": to_iso_date(self.rate_date),
            "rate_paise": self.rate_paise,
            "created_by_staff_id": self.created_by_staff_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
