# Overview: Metal type catalogue, purity labels and HSN defaults.

from __future__ import annotations

from .validation import ValidationError, issue


METAL_GOLD = "gold"                  # standard gold
METAL_GOLD_916 = "gold_916"          # 22k
METAL_GOLD_750 = "gold_750"          # 18k
METAL_SILVER_92 = "silver_92"        # 92.5 silver
METAL_SILVER_70 = "silver_70"        # 70 silver
METAL_SELAM_SILVER = "selam_silver"

METAL_TYPES = [
    METAL_GOLD,
    METAL_GOLD_916,
    METAL_GOLD_750,
    METAL_SILVER_92,
    METAL_SILVER_70,
    METAL_SELAM_SILVER,
]

METAL_LABELS = {
    METAL_GOLD: "Gold",
    METAL_GOLD_916: "Gold 22K (91.6)",
    METAL_GOLD_750: "Gold 18K (75)",
    METAL_SILVER_92: "Silver 92.5",
    METAL_SILVER_70: "Silver 70",
    METAL_SELAM_SILVER: "Selam Silver",
}

# Purity label pre-filled when an operator picks a metal type
DEFAULT_PURITY = {
    METAL_GOLD: None,
    METAL_GOLD_916: "91.6",
    METAL_GOLD_750: "75",
    METAL_SILVER_92: "92.5",
    METAL_SILVER_70: "70",
    METAL_SELAM_SILVER: None,
}

# Purity labels on purchase slips that select a metal-type rate
PURITY_TO_METAL = {
    "22k": METAL_GOLD_916,
    "91.6%": METAL_GOLD_916,
    "91.6": METAL_GOLD_916,
    "18k": METAL_GOLD_750,
    "75%": METAL_GOLD_750,
    "75": METAL_GOLD_750,
    "92.5%": METAL_SILVER_92,
    "92.5": METAL_SILVER_92,
    "70%": METAL_SILVER_70,
    "70": METAL_SILVER_70,
}

DEFAULT_ITEM_HSN = "711319"
DEFAULT_EXCHANGE_HSN = "7113"


def require_metal_type(metal_type: str | None, field: str = "metal_type", index: int | None = None) -> str:
    value = metal_type.strip().lower() if isinstance(metal_type, str) else ""
    if value not in METAL_TYPES:
        raise ValidationError(
            f"Invalid {field}: {metal_type}. Must be one of {METAL_TYPES}",
            details=[issue(field, "unknown metal type", index)],
        )
    return value


def metal_type_for_purity(purity: str | None, default: str = METAL_GOLD) -> str:
    """Map a free-text purity label to the metal type whose rate prices it."""
    if not purity:
        return default
    return PURITY_TO_METAL.get(purity.strip().lower(), default)
