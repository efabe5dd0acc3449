# Overview: Pure valuation rules for bill lines, exchanges and bill totals.

"""
Line-Item Valuation

All money is integer paise and all weights integer milligrams, so
round2(weight_grams * rate_rupees) becomes a half-up rounding of
weight_mg * rate_paise / 1000 to a whole paisa.

Purity never enters the formula: the rate already reflects the metal
type chosen upstream.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from ..validation import ValidationError, MG_PER_GRAM, issue


SALE_TYPE_GST = "gst"
SALE_TYPE_NON_GST = "non_gst"
SALE_TYPES = [SALE_TYPE_GST, SALE_TYPE_NON_GST]

TAX_MODE_NONE = "none"
TAX_MODE_INTRASTATE = "intrastate"
TAX_MODE_INTERSTATE = "interstate"
TAX_MODES = [TAX_MODE_NONE, TAX_MODE_INTRASTATE, TAX_MODE_INTERSTATE]


def round_paise(value: Decimal) -> int:
    """Half-up rounding to a whole paisa."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def metal_value_paise(weight_mg: int, rate_paise: int) -> int:
    """round2(weight x rate) in paise."""
    return round_paise(Decimal(weight_mg) * Decimal(rate_paise) / MG_PER_GRAM)


def _check_weight_and_rate(weight_mg, rate_paise, index: int | None) -> None:
    problems = []
    if weight_mg is None or weight_mg <= 0:
        problems.append(issue("weight_grams", "weight must be greater than 0", index))
    if rate_paise is None or rate_paise <= 0:
        problems.append(issue("rate_paise", "rate must be greater than 0", index))
    if problems:
        raise ValidationError(problems[0]["message"], details=problems)


def line_value(weight_mg: int, rate_paise: int, making_charge_paise: int = 0, *, index: int | None = None) -> int:
    """
    value(weight, rate, making_charge) = round2(weight * rate) + making_charge

    Raises ValidationError for non-positive weight/rate or a negative
    making charge.
    """
    _check_weight_and_rate(weight_mg, rate_paise, index)
    making = making_charge_paise or 0
    if making < 0:
        raise ValidationError(
            "making charge cannot be negative",
            details=[issue("making_charge_paise", "making charge cannot be negative", index)],
        )
    return metal_value_paise(weight_mg, rate_paise) + making


def exchange_value(weight_mg: int, rate_paise: int, *, index: int | None = None) -> int:
    """Old-gold credit: round2(weight * rate)."""
    _check_weight_and_rate(weight_mg, rate_paise, index)
    return metal_value_paise(weight_mg, rate_paise)


def split_tax(taxable_paise: int, rate_bps: int) -> tuple[int, int]:
    """Half of the rate each way (CGST, SGST)."""
    half = round_paise(Decimal(taxable_paise) * Decimal(rate_bps) / Decimal(20000))
    return half, half


@dataclass(frozen=True)
class BillTotals:
    subtotal_paise: int
    discount_paise: int
    cgst_paise: int
    sgst_paise: int
    igst_paise: int
    grand_total_paise: int

    @property
    def taxable_paise(self) -> int:
        return self.subtotal_paise - self.discount_paise

    def to_dict(self) -> dict:
        return {
            "subtotal_paise": self.subtotal_paise,
            "discount_paise": self.discount_paise,
            "cgst_paise": self.cgst_paise,
            "sgst_paise": self.sgst_paise,
            "igst_paise": self.igst_paise,
            "grand_total_paise": self.grand_total_paise,
        }


def compute_bill_totals(
    subtotal_paise: int,
    *,
    discount_paise: int = 0,
    sale_type: str = SALE_TYPE_GST,
    tax_mode: str = TAX_MODE_INTRASTATE,
    gst_rate_bps: int = 300,
) -> BillTotals:
    """
    grand_total = (subtotal - discount) + cgst + sgst + igst

    non_gst sales and tax_mode "none" carry no tax; intrastate splits the
    rate into CGST and SGST; interstate charges it all as IGST.
    """
    if sale_type not in SALE_TYPES:
        raise ValidationError(f"Invalid sale_type: {sale_type}. Must be one of {SALE_TYPES}")
    if tax_mode not in TAX_MODES:
        raise ValidationError(f"Invalid tax_mode: {tax_mode}. Must be one of {TAX_MODES}")
    if subtotal_paise < 0:
        raise ValidationError("subtotal cannot be negative")
    discount = discount_paise or 0
    if discount < 0:
        raise ValidationError("discount cannot be negative")
    if discount > subtotal_paise:
        raise ValidationError("discount cannot exceed subtotal")

    taxable = subtotal_paise - discount
    cgst = sgst = igst = 0
    if sale_type == SALE_TYPE_GST:
        if tax_mode == TAX_MODE_INTRASTATE:
            cgst, sgst = split_tax(taxable, gst_rate_bps)
        elif tax_mode == TAX_MODE_INTERSTATE:
            igst = round_paise(Decimal(taxable) * Decimal(gst_rate_bps) / Decimal(10000))

    return BillTotals(
        subtotal_paise=subtotal_paise,
        discount_paise=discount,
        cgst_paise=cgst,
        sgst_paise=sgst,
        igst_paise=igst,
        grand_total_paise=taxable + cgst + sgst + igst,
    )


def amount_due(total_paise: int, advance_paise: int) -> int:
    """Balance left on an advance booking, never below zero."""
    return max(0, total_paise - advance_paise)
