"""
Payment ledger: payments recorded against committed bills.

Rules:
  • amount must be > 0 and may not exceed the bill's current due.
  • Payments are append-only; there is no edit or void.
  • Payments against one bill are serialized with a per-bill lock, so the
    overpayment check always sees every earlier payment.
  • Settlement status is derived on demand, never stored.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from ...database.repositories.bills_repo import Bill, BillsRepo, Payment
from ...database.store import RecordStore
from ...errors import OverpaymentError, ValidationError
from ...utils.helpers import fmt_money, new_id, now_iso, today_str
from ...utils.locks import KeyedLocks, locks_for
from ...utils.validators import parse_iso_date
from . import calculations as calc

_log = logging.getLogger(__name__)


def settlement_status_of(grand_total: Any, advance: Any, payments: Iterable[Any]) -> str:
    """
    Pure classification from (advance, payment amounts, grand total):
      - 'paid'    when advance + Σpayments >= grand total
      - 'unpaid'  when advance + Σpayments == 0
      - 'partial' otherwise
    """
    received = calc.to_money(advance) + calc.money_sum(payments)
    return calc.status_from_paid(grand_total, received)


class PaymentLedger:
    def __init__(self, store: RecordStore, locks: Optional[KeyedLocks] = None):
        self.store = store
        self.bills = BillsRepo(store)
        self.locks = locks or locks_for(store, "bill")

    # --- queries -------------------------------------------------------------

    @staticmethod
    def settlement_status(bill: Bill) -> str:
        return settlement_status_of(bill.grand_total, bill.advance, (p.amount for p in bill.payments))

    @staticmethod
    def paid_to_date(bill: Bill) -> Decimal:
        """Advance plus every recorded payment."""
        return calc.to_money(bill.advance) + calc.money_sum(p.amount for p in bill.payments)

    @staticmethod
    def remaining_due(bill: Bill) -> Decimal:
        subtotal = calc.money_sum(it.total or 0 for it in bill.items)
        grand = calc.grand_total(subtotal, bill.discount)
        return calc.remaining_due(grand, bill.advance, calc.money_sum(p.amount for p in bill.payments))

    def payment_history(self, bill_id: str) -> list[Payment]:
        """Payments oldest first by date; same-day payments in the order recorded."""
        bill = self.bills.require(bill_id)
        return sorted(bill.payments, key=lambda p: p.date or "")

    # --- API -----------------------------------------------------------------

    def add_payment(self, bill_id: str, date: Optional[str], amount: Any) -> Bill:
        """
        Append a payment and return the updated bill.

        Raises ValidationError for a non-positive amount or malformed date, and
        OverpaymentError when amount exceeds the current due (nothing is written).
        """
        amt = calc.ensure_non_negative(amount, "Payment amount")
        if amt <= 0:
            raise ValidationError("Payment amount must be greater than zero.")
        when = parse_iso_date(date) if date else None
        if date and when is None:
            raise ValidationError("Payment date must be in YYYY-MM-DD format.")

        with self.locks.hold(bill_id), self.store.transaction():
            bill = self.bills.require(bill_id)
            due = self.remaining_due(bill)
            if amt > due:
                _log.warning("rejected payment of %s on bill %s (due %s)", amt, bill_id, due)
                raise OverpaymentError(float(amt), float(due))
            bill.payments.append(
                Payment(
                    payment_id=new_id(),
                    date=str(when or today_str()),
                    amount=float(amt),
                    created_at=now_iso(),
                )
            )
            saved = self.bills.save(bill)

        _log.info("payment %s on bill #%s; due now %s", fmt_money(amt), saved.bill_number, fmt_money(saved.due))
        return saved
