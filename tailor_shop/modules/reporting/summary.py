"""
Read-only roll-ups for the dashboard and the customer view.

Consistency note:
- Receivable per bill is its derived due (grand total - advance - payments),
  recomputed from the bill's lines and payments rather than read from the
  stored `due` field.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ...constants import LOW_STOCK_THRESHOLD
from ...database.repositories.bills_repo import Bill, BillsRepo
from ...database.repositories.customers_repo import CustomersRepo
from ...database.repositories.stocks_repo import Stock, StocksRepo
from ...database.store import RecordStore
from ..payments import calculations as calc
from ..payments import status as status_labels
from ..payments.ledger import PaymentLedger


@dataclass
class DashboardSummary:
    stock_items: int
    units_on_hand: int
    low_stock: list[Stock] = field(default_factory=list)
    customers: int = 0
    bills: int = 0
    receivable: Decimal = Decimal("0.00")


@dataclass
class BillRow:
    bill: Bill
    status: str
    status_label: str
    due: Decimal


@dataclass
class CustomerAccount:
    customer_id: str
    bills: list[BillRow] = field(default_factory=list)
    total_spent: Decimal = Decimal("0.00")
    total_due: Decimal = Decimal("0.00")


def dashboard_summary(store: RecordStore, *, low_stock_threshold: int = LOW_STOCK_THRESHOLD) -> DashboardSummary:
    stocks = StocksRepo(store).list_stocks()
    bills = BillsRepo(store).list_bills()
    return DashboardSummary(
        stock_items=len(stocks),
        units_on_hand=sum(s.quantity for s in stocks),
        low_stock=[s for s in stocks if s.quantity < low_stock_threshold],
        customers=len(CustomersRepo(store).list_customers()),
        bills=len(bills),
        receivable=calc.money_sum(PaymentLedger.remaining_due(b) for b in bills),
    )


def customer_account(store: RecordStore, customer_id: str) -> CustomerAccount:
    """
    Bills of one customer (newest first) with settlement status, plus
    total spent (Σ grand totals) and total due (Σ due).
    """
    CustomersRepo(store).require(customer_id)
    rows = []
    for b in BillsRepo(store).list_by_customer(customer_id):
        st = PaymentLedger.settlement_status(b)
        rows.append(BillRow(bill=b, status=st, status_label=status_labels.label(st), due=PaymentLedger.remaining_due(b)))
    return CustomerAccount(
        customer_id=customer_id,
        bills=rows,
        total_spent=calc.money_sum(r.bill.grand_total for r in rows),
        total_due=calc.money_sum(r.due for r in rows),
    )
