# Overview: Codec for the legacy "Description: X | HSN Code: Y" exchange notes text.

"""
Older exchange rows carry their particulars and HSN code only inside the
free-text notes column. New rows store them in structured columns and still
write the encoded text so both old and new readers agree.
"""

from __future__ import annotations

import re

from ..metals import DEFAULT_EXCHANGE_HSN


DEFAULT_PARTICULARS = "Old Gold Exchange"

_DESCRIPTION_RE = re.compile(r"Description:\s*([^|]+)")
_HSN_RE = re.compile(r"HSN Code:\s*([^|]+)")


def encode_exchange_notes(particulars: str | None, hsn_code: str | None) -> str | None:
    """
    "Description: <particulars> | HSN Code: <code>"

    Either clause is omitted when empty; None when both are.
    """
    parts = []
    if particulars and particulars.strip():
        parts.append(f"Description: {particulars.strip()}")
    if hsn_code and hsn_code.strip():
        parts.append(f"HSN Code: {hsn_code.strip()}")
    return " | ".join(parts) or None


def decode_exchange_notes(notes: str | None) -> tuple[str, str]:
    """Return (particulars, hsn_code), defaulting whichever clause is missing."""
    particulars = DEFAULT_PARTICULARS
    hsn_code = DEFAULT_EXCHANGE_HSN
    if not notes:
        return particulars, hsn_code

    match = _DESCRIPTION_RE.search(notes)
    if match and match.group(1).strip():
        particulars = match.group(1).strip()
    match = _HSN_RE.search(notes)
    if match and match.group(1).strip():
        hsn_code = match.group(1).strip()
    return particulars, hsn_code


def resolve_particulars_and_hsn(exchange) -> tuple[str, str]:
    """Structured columns first; legacy rows fall back to decoding notes."""
    decoded_particulars, decoded_hsn = decode_exchange_notes(exchange.notes)
    return (
        exchange.particulars or decoded_particulars,
        exchange.hsn_code or decoded_hsn,
    )
