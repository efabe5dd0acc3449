# Overview: Total lock / recompute state machine for a transaction's subtotal.

"""
The subtotal of a transaction is either derived from its line items (AUTO)
or pinned by the operator (LOCKED).

    AUTO   --add/remove item-->  AUTO    total = sum(line totals)
    AUTO   --manual total---->   LOCKED  total = typed value
    LOCKED --add/remove item-->  LOCKED  total unchanged
    LOCKED --unlock---------->   AUTO    total = sum(line totals), pin dropped

A persisted transaction loaded for editing starts LOCKED: its stored total
may include negotiated adjustments that the line items cannot reproduce.
"""

from __future__ import annotations

from ..validation import ValidationError


STATE_AUTO = "AUTO"
STATE_LOCKED = "LOCKED"


class TotalLock:
    def __init__(self, line_totals: list[int] | None = None):
        self._line_totals: list[int] = list(line_totals or [])
        self._state = STATE_AUTO
        self._pinned: int | None = None
        self._total = sum(self._line_totals)

    @classmethod
    def from_persisted(cls, total_paise: int, line_totals: list[int]) -> "TotalLock":
        """Editing an existing transaction: the stored total is authoritative."""
        lock = cls(line_totals)
        lock._state = STATE_LOCKED
        lock._pinned = total_paise
        lock._total = total_paise
        return lock

    @classmethod
    def from_draft(cls, line_totals: list[int], *, locked: bool, total_paise: int | None) -> "TotalLock":
        """Rebuild the machine from a submitted draft (lock flag + typed total)."""
        lock = cls(line_totals)
        if locked:
            if total_paise is None:
                raise ValidationError("total_paise is required when the total is locked")
            lock.set_manual_total(total_paise)
        return lock

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_locked(self) -> bool:
        return self._state == STATE_LOCKED

    @property
    def total(self) -> int:
        return self._total

    @property
    def items_total(self) -> int:
        return sum(self._line_totals)

    @property
    def line_totals(self) -> list[int]:
        return list(self._line_totals)

    def _recompute(self) -> None:
        if self._state == STATE_AUTO:
            self._total = self.items_total

    def add_item(self, line_total: int) -> int:
        self._line_totals.append(line_total)
        self._recompute()
        return self._total

    def remove_item(self, index: int) -> int:
        if index < 0 or index >= len(self._line_totals):
            raise IndexError(f"No line item at index {index}")
        del self._line_totals[index]
        self._recompute()
        return self._total

    def set_manual_total(self, total_paise: int) -> int:
        if total_paise is None or total_paise < 0:
            raise ValidationError("total cannot be negative")
        self._state = STATE_LOCKED
        self._pinned = total_paise
        self._total = total_paise
        return self._total

    def unlock(self) -> int:
        self._state = STATE_AUTO
        self._pinned = None
        self._recompute()
        return self._total

    def to_dict(self) -> dict:
        return {
            "state": self._state,
            "total_paise": self._total,
            "items_total_paise": self.items_total,
            "pinned_total_paise": self._pinned,
        }
