"""
Domain errors shared by repositories and the billing/settlement modules.

Every error here is safe to surface to the UI as-is (str(err) is a
user-facing message).
"""
from __future__ import annotations


class DomainError(Exception):
    """Domain-level error suitable for surfacing to the UI."""
    pass


class ValidationError(DomainError):
    """One or more user-correctable rule violations, reported together."""

    def __init__(self, violations: list[str] | str):
        if isinstance(violations, str):
            violations = [violations]
        self.violations: list[str] = list(violations)
        super().__init__("; ".join(self.violations))


class NotFoundError(DomainError):
    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"No record '{record_id}' in {collection}.")


class InsufficientStockError(DomainError):
    """A deduction would take quantity-on-hand below zero."""

    def __init__(self, stock_id: str, on_hand: int, requested: int):
        self.stock_id = stock_id
        self.on_hand = on_hand
        self.requested = requested
        super().__init__(
            f"Cannot complete sale: only {on_hand} unit(s) of stock '{stock_id}' "
            f"on hand, {requested} requested."
        )


class OverpaymentError(DomainError):
    def __init__(self, amount, due):
        self.amount = amount
        self.due = due
        super().__init__(f"Payment of {amount} exceeds the amount due ({due}).")


class BillCommittedError(DomainError):
    """Line items and header fields are frozen once a bill is committed."""
    pass


class StorageError(DomainError):
    """Persistence boundary failure. Safe to retry only if the write did not apply."""
    pass


__all__ = [
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "OverpaymentError",
    "BillCommittedError",
    "StorageError",
]
