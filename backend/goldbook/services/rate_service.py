# Overview: Service-layer operations for metal rates; resolves a price per gram with fallback.

"""
Rate Resolver

Resolution order for one metal type on one date:
1. MANUAL    - rate typed by the operator for this line, if positive
2. TODAY     - rate published for the date
3. PREVIOUS  - most recent rate published before the date
4. UNRESOLVED - 0; validation rejects any line priced this way

RateSession caches one resolution per metal type for the life of a form.
Lines keep the rate they were priced at; re-resolving never rewrites them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..extensions import db
from ..metals import METAL_TYPES, require_metal_type
from ..models import MetalRate
from ..validation import ValidationError
from goldbook.time_utils import today, to_iso_date
from .persistence import commit_or_fail


RATE_SOURCE_MANUAL = "MANUAL"
RATE_SOURCE_TODAY = "TODAY"
RATE_SOURCE_PREVIOUS = "PREVIOUS"
RATE_SOURCE_UNRESOLVED = "UNRESOLVED"


@dataclass(frozen=True)
class RateResolution:
    metal_type: str
    rate_paise: int
    source: str
    rate_date: date | None = None

    @property
    def resolved(self) -> bool:
        return self.source != RATE_SOURCE_UNRESOLVED

    def to_dict(self) -> dict:
        return {
            "metal_type": self.metal_type,
            "rate_paise": self.rate_paise,
            "source": self.source,
            "rate_date": to_iso_date(self.rate_date),
            "resolved": self.resolved,
        }


def published_rate(metal_type: str, on_date: date) -> MetalRate | None:
    """Rate published exactly on on_date."""
    return (
        db.session.query(MetalRate)
        .filter_by(metal_type=metal_type, rate_date=on_date)
        .first()
    )


def latest_rate_before(metal_type: str, on_date: date) -> MetalRate | None:
    """Most recent rate published strictly before on_date."""
    return (
        db.session.query(MetalRate)
        .filter(MetalRate.metal_type == metal_type, MetalRate.rate_date < on_date)
        .order_by(MetalRate.rate_date.desc())
        .first()
    )


def resolve_rate(
    metal_type: str,
    on_date: date | None = None,
    manual_rate_paise: int | None = None,
) -> RateResolution:
    """Resolve a non-negative rate per gram (paise) for metal_type on on_date."""
    metal_type = require_metal_type(metal_type)
    on_date = on_date or today()

    # Manual override always wins
    if manual_rate_paise is not None and manual_rate_paise > 0:
        return RateResolution(metal_type, manual_rate_paise, RATE_SOURCE_MANUAL)

    row = published_rate(metal_type, on_date)
    if row and row.rate_paise > 0:
        return RateResolution(metal_type, row.rate_paise, RATE_SOURCE_TODAY, row.rate_date)

    row = latest_rate_before(metal_type, on_date)
    if row and row.rate_paise > 0:
        return RateResolution(metal_type, row.rate_paise, RATE_SOURCE_PREVIOUS, row.rate_date)

    return RateResolution(metal_type, 0, RATE_SOURCE_UNRESOLVED)


def rates_for_date(on_date: date | None = None) -> dict[str, RateResolution]:
    """Rate board: every metal type resolved for on_date (no manual overrides)."""
    on_date = on_date or today()
    return {metal: resolve_rate(metal, on_date) for metal in METAL_TYPES}


def publish_rate(
    metal_type: str,
    rate_paise: int,
    on_date: date | None = None,
    staff_id: int | None = None,
) -> MetalRate:
    """Enter (or correct) the published rate for a metal type on a date."""
    metal_type = require_metal_type(metal_type)
    if rate_paise is None or rate_paise <= 0:
        raise ValidationError("rate_paise must be greater than 0")
    on_date = on_date or today()

    row = published_rate(metal_type, on_date)
    if row:
        row.rate_paise = rate_paise
        row.created_by_staff_id = staff_id
    else:
        row = MetalRate(
            metal_type=metal_type,
            rate_date=on_date,
            rate_paise=rate_paise,
            created_by_staff_id=staff_id,
        )
        db.session.add(row)

    commit_or_fail("metal rate", "rate")
    return row


class RateSession:
    """
    Per-form cache of published rates, one entry per metal type.

    Metal types are resolved independently and only on first use.
    """

    def __init__(self, on_date: date | None = None, resolver=resolve_rate):
        self.on_date = on_date or today()
        self._resolver = resolver
        self._cache: dict[str, RateResolution] = {}

    def rate_for(self, metal_type: str) -> RateResolution:
        metal_type = require_metal_type(metal_type)
        if metal_type not in self._cache:
            self._cache[metal_type] = self._resolver(metal_type, self.on_date)
        return self._cache[metal_type]

    def resolve_line(self, metal_type: str, manual_rate_paise: int | None = None) -> RateResolution:
        """Rate for a new or re-typed line: a positive manual rate wins, else the cached rate."""
        metal_type = require_metal_type(metal_type)
        if manual_rate_paise is not None and manual_rate_paise > 0:
            return RateResolution(metal_type, manual_rate_paise, RATE_SOURCE_MANUAL)
        return self.rate_for(metal_type)

    def invalidate(self, metal_type: str | None = None) -> None:
        """Drop cached rates (all, or one metal type) so the next use re-reads them."""
        if metal_type is None:
            self._cache.clear()
        else:
            self._cache.pop(metal_type, None)

    def board(self) -> dict[str, RateResolution]:
        return {metal: self.rate_for(metal) for metal in METAL_TYPES}
