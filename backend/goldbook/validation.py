from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


# Maximum amount: ₹99,99,99,999.99 (9,999,999,999 paise)
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT_PAISE = 9_999_999_999

# Weights are stored in milligrams; a single line above 100 kg is a typo
MAX_WEIGHT_MG = 100_000_000

MG_PER_GRAM = 1000


class ValidationError(ValueError):
    """
    400-level input problem.

    details: list of {"index", "field", "message"} entries so the caller can
    point at the offending line item or exchange row.
    """

    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(message)
        self.details = details or []


def issue(field: str, message: str, index: int | None = None) -> dict:
    return {"index": index, "field": field, "message": message}


def parse_int(value: Any, field: str, *, required: bool = True) -> int | None:
    """Strict integer coercion: rejects floats, decimals and scientific notation."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None

    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


_TRUE_STRINGS = {"true", "1"}
_FALSE_STRINGS = {"false", "0"}


def parse_bool(value: Any, field: str, *, default: bool = False) -> bool:
    """Strict flag coercion: a bool, 0/1, or "true"/"false"/"1"/"0" (any case)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValidationError(f"{field} must be true or false", details=[issue(field, "must be true or false")])


def parse_paise(value: Any, field: str, *, required: bool = True, allow_zero: bool = True) -> int | None:
    """Parse a money amount given in paise."""
    amount = parse_int(value, field, required=required)
    if amount is None:
        return None
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount == 0 and not allow_zero:
        raise ValidationError(f"{field} must be > 0")
    if amount > MAX_AMOUNT_PAISE:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_PAISE}")
    return amount


def rupees_to_paise(value: Any, field: str = "amount") -> int:
    """Convert a rupee amount ("6000", "6000.50", 6000) to paise, half-up."""
    try:
        rupees = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not rupees.is_finite():
        raise ValidationError(f"{field} must be a number")
    paise = int((rupees * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return parse_paise(paise, field)


def parse_weight_mg(value: Any, field: str = "weight_grams", *, required: bool = True) -> int | None:
    """
    Parse a weight given in grams (str, int, float or Decimal) into milligrams.

    More than three decimal places is rejected rather than silently rounded.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        grams = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not grams.is_finite():
        raise ValidationError(f"{field} must be a number")

    milligrams = grams * MG_PER_GRAM
    if milligrams != milligrams.to_integral_value():
        raise ValidationError(f"{field} supports at most 3 decimal places")
    mg = int(milligrams)
    if mg > MAX_WEIGHT_MG:
        raise ValidationError(f"{field} is too large")
    return mg


def mg_to_grams(weight_mg: int | None) -> str | None:
    """Render milligrams as a grams string with 3 decimals ("3.500")."""
    if weight_mg is None:
        return None
    return str((Decimal(weight_mg) / MG_PER_GRAM).quantize(Decimal("0.001")))


def clean_text(value: Any, *, max_length: int | None = None, field: str = "value") -> str | None:
    """Strip strings; blank becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    text = clean_text(value, max_length=max_length, field=field)
    if text is None:
        raise ValidationError(f"{field} is required")
    return text
