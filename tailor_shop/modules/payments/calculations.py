"""
payments/calculations.py

Pure money helpers for bill totals and settlement. Mirrors the math used by:
- BillAggregate.compute_totals() while a bill is being composed.
- Bill.refresh_totals() before a bill record is written.
- PaymentLedger when checking a new payment against the amount due.

Do not import repos or touch the store here.
Only compute numbers; formatting belongs in the UI.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Iterable

from ...errors import ValidationError
from ...utils.validators import is_number

__all__ = [
    "CENT",
    "to_money",
    "money_sum",
    "line_total",
    "unit_price",
    "grand_total",
    "remaining_due",
    "ensure_non_negative",
    "status_from_paid",
    "STATUS_UNPAID",
    "STATUS_PARTIAL",
    "STATUS_PAID",
]

CENT = Decimal("0.01")

STATUS_UNPAID = "unpaid"
STATUS_PARTIAL = "partial"
STATUS_PAID = "paid"


# -----------------------------
# Core utilities
# -----------------------------

def to_money(x: Any) -> Decimal:
    """
    Quantize to cents with half-up rounding (typical financial rounding).

    Raises ValueError for anything that is not a real number; bools and
    strings are rejected rather than coerced.
    """
    if isinstance(x, Decimal):
        d = x
    elif is_number(x):
        try:
            d = Decimal(str(x))
        except InvalidOperation as e:
            raise ValueError(f"Could not parse {x!r} as a number.") from e
    else:
        raise ValueError(f"Could not parse {x!r} as a number.")
    if not d.is_finite():
        raise ValueError(f"{x!r} is not a finite amount.")
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


def money_sum(values: Iterable[Any]) -> Decimal:
    total = Decimal("0.00")
    for v in values:
        total += to_money(v)
    return total


def ensure_non_negative(x: Any, label: str) -> Decimal:
    """Return x as money, or raise ValidationError if negative or not a number."""
    try:
        d = to_money(x)
    except ValueError:
        raise ValidationError(f"{label} must be a number.") from None
    if d < 0:
        raise ValidationError(f"{label} cannot be negative.")
    return d


# -----------------------------
# Line helpers
# -----------------------------

def line_total(price: Any, quantity: int) -> Decimal:
    """total = price × quantity, rounded to cents."""
    return to_money(to_money(price) * quantity)


def unit_price(total: Any, quantity: int) -> Decimal:
    """Display-only unit price derived from an authoritative line total."""
    if quantity <= 0:
        return Decimal("0.00")
    return to_money(to_money(total) / quantity)


# -----------------------------
# Bill helpers
# -----------------------------

def grand_total(subtotal: Any, discount: Any) -> Decimal:
    """grand_total = subtotal - discount (not clamped)."""
    return to_money(subtotal) - to_money(discount)


def remaining_due(grand: Any, advance: Any, paid: Any) -> Decimal:
    """
    due = grand_total - advance - paid.

    Not clamped: the payment ledger refuses any payment that would take it
    below zero, so a negative value here signals an upstream bug.
    """
    return to_money(grand) - to_money(advance) - to_money(paid)


# -----------------------------
# Common status helper
# -----------------------------

def status_from_paid(total: Any, paid: Any) -> str:
    """
    Threshold helper for settlement badges (paid includes the advance):
      - 'paid'    if paid >= total
      - 'unpaid'  if paid == 0
      - 'partial' otherwise
    """
    t = to_money(total)
    p = to_money(paid)
    if p >= t:
        return STATUS_PAID
    if p == 0:
        return STATUS_UNPAID
    return STATUS_PARTIAL
