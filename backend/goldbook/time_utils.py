"""
Clock and calendar helpers.

Two notions of time live in goldbook:
- timestamps (created_at, updated_at, payment recorded_at): UTC, stored naive
- business dates (bill_date, rate_date, delivery_date): the shop's calendar
  day, stored as DATE and exchanged on the wire as YYYY-MM-DD
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp for audit columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    """Business date used for bill dates and daily metal rates."""
    return date.today()


def parse_iso_date(value) -> Optional[date]:
    """
    Business date from the wire.

    Blank input is None. A datetime (or a string carrying a time part, as
    some date pickers send) is cut down to its calendar day. Raises
    ValueError for anything else that is not YYYY-MM-DD.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    day, sep, _time = text.partition("T")
    if sep and not _time:
        raise ValueError(f"invalid date: {text!r}")
    return date.fromisoformat(day)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Timestamp as ISO-8601 with a trailing Z, to the second."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"


def to_iso_date(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d else None
