"""
Bill composition and commit.

A BillAggregate is the in-progress bill: header fields, ordered line items and
the derived totals. commit() validates, writes the bill and posts one stock
sale per line inside a single store transaction. If any line cannot be
covered by stock, nothing is written.

Line pricing contract:
- The line total is authoritative. Entering a unit price computes
  total = price × quantity once; after that the unit price is a derived
  display value (total / quantity).
- Changing quantity keeps the total and re-derives the unit price.
- set_price() is the only call that recomputes the total from a price.

After commit the aggregate is frozen; further edits raise BillCommittedError.
Payments are added through PaymentLedger, never through the aggregate.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

from ...config import default_category_fields
from ...constants import COL_CUSTOMERS
from ...database.repositories.bills_repo import Bill, BillItem, BillsRepo
from ...database.repositories.stocks_repo import StocksRepo
from ...database.store import RecordStore
from ...errors import BillCommittedError, NotFoundError, ValidationError
from ...utils.helpers import new_id
from ...utils.validators import is_number, is_positive_int, non_empty, parse_iso_date
from ..inventory.ledger import StockLedger
from ..payments import calculations as calc

_log = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass(frozen=True)
class BillTotals:
    subtotal: Decimal
    discount: Decimal
    grand_total: Decimal
    advance: Decimal
    paid: Decimal
    due: Decimal


class BillAggregate:
    """
    Header fields are readable attributes (bill_number, customer_id, date,
    delivery_date, discount, advance); change them through set_header(),
    set_discount() and set_advance().
    """

    def __init__(
        self,
        store: RecordStore,
        category_fields: Optional[Mapping[str, tuple[str, ...] | list[str]]] = None,
        *,
        ledger: Optional[StockLedger] = None,
        bill_number: str = "",
        customer_id: Optional[str] = None,
        date: Optional[str] = None,
        delivery_date: Optional[str] = None,
        discount: Any = 0,
        advance: Any = 0,
    ):
        self.store = store
        self.category_fields = dict(category_fields) if category_fields is not None else default_category_fields()
        self.ledger = ledger or StockLedger(store)
        self.stocks = StocksRepo(store)
        self.bills = BillsRepo(store)

        self.bill_number = (bill_number or "").strip()
        self.customer_id = customer_id or None
        self.date = date
        self.delivery_date = delivery_date
        self.discount = calc.ensure_non_negative(discount, "Discount")
        self.advance = calc.ensure_non_negative(advance, "Advance")

        self.lines: list[BillItem] = []
        self.payments: list = []
        self._committed: Optional[Bill] = None

    @classmethod
    def from_bill(cls, store: RecordStore, bill: Bill, category_fields=None) -> "BillAggregate":
        """Read-only view over a committed bill (totals include its payments)."""
        agg = cls(
            store,
            category_fields,
            bill_number=bill.bill_number,
            customer_id=bill.customer_id,
            date=bill.date,
            delivery_date=bill.delivery_date,
            discount=bill.discount,
            advance=bill.advance,
        )
        agg.lines = [BillItem.from_record(it.to_record()) for it in bill.items]
        agg.payments = list(bill.payments)
        agg._committed = bill
        return agg

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def committed(self) -> Optional[Bill]:
        return self._committed

    def _ensure_open(self) -> None:
        if self._committed is not None:
            raise BillCommittedError(
                f"Bill #{self._committed.bill_number} is already committed; its lines cannot change."
            )

    def get_line(self, line_id: str) -> BillItem:
        for it in self.lines:
            if it.item_id == line_id:
                return it
        raise NotFoundError("bill lines", line_id)

    def measurement_fields(self, category: Optional[str]) -> tuple[str, ...]:
        """Ordered measurement fields for a category; empty for unknown categories."""
        return tuple(self.category_fields.get(category or "", ()))

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------
    def set_header(
        self,
        *,
        bill_number: Any = _UNSET,
        customer_id: Any = _UNSET,
        date: Any = _UNSET,
        delivery_date: Any = _UNSET,
    ) -> None:
        self._ensure_open()
        if bill_number is not _UNSET:
            self.bill_number = (bill_number or "").strip()
        if customer_id is not _UNSET:
            self.customer_id = customer_id or None
        if date is not _UNSET:
            self.date = date
        if delivery_date is not _UNSET:
            self.delivery_date = delivery_date

    def set_discount(self, discount: Any) -> None:
        self._ensure_open()
        self.discount = calc.ensure_non_negative(discount, "Discount")

    def set_advance(self, advance: Any) -> None:
        self._ensure_open()
        self.advance = calc.ensure_non_negative(advance, "Advance")

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------
    @staticmethod
    def _check_quantity(quantity: Any) -> int:
        if not is_positive_int(quantity):
            raise ValidationError("Quantity must be a whole number of at least 1.")
        return quantity

    def add_line(
        self,
        stock_id: Optional[str],
        quantity: int,
        *,
        price: Any = None,
        total: Any = None,
        description: str = "",
        category: Optional[str] = None,
        measurements: Optional[Mapping[str, Any]] = None,
    ) -> BillItem:
        """
        Append a line. Give exactly one of `price` (unit price) or `total`.
        The category is copied from the stock item unless given explicitly.
        """
        self._ensure_open()
        qty = self._check_quantity(quantity)
        if (price is None) == (total is None):
            raise ValidationError("Enter either a unit price or a line total, not both.")

        if total is not None:
            line_total = calc.ensure_non_negative(total, "Line total")
            line_price = calc.unit_price(line_total, qty)
        else:
            line_price = calc.ensure_non_negative(price, "Unit price")
            line_total = calc.line_total(line_price, qty)

        if stock_id:
            stock = self.stocks.require(stock_id)
            category = category or stock.category

        item = BillItem(
            item_id=new_id(),
            stock_id=stock_id or None,
            category=(category or "").strip() or None,
            quantity=qty,
            price=float(line_price),
            total=float(line_total),
            description=(description or "").strip(),
            measurements=self._clean_measurements(measurements),
        )
        self.lines.append(item)
        return item

    def remove_line(self, line_id: str) -> None:
        self._ensure_open()
        self.lines.remove(self.get_line(line_id))

    def set_quantity(self, line_id: str, quantity: int) -> BillItem:
        """Change quantity; the total stays, the unit price is re-derived."""
        self._ensure_open()
        item = self.get_line(line_id)
        item.quantity = self._check_quantity(quantity)
        item.price = float(calc.unit_price(item.total or 0, item.quantity))
        return item

    def set_total(self, line_id: str, total: Any) -> BillItem:
        self._ensure_open()
        item = self.get_line(line_id)
        t = calc.ensure_non_negative(total, "Line total")
        item.total = float(t)
        item.price = float(calc.unit_price(t, item.quantity))
        return item

    def set_price(self, line_id: str, price: Any) -> BillItem:
        self._ensure_open()
        item = self.get_line(line_id)
        p = calc.ensure_non_negative(price, "Unit price")
        item.price = float(p)
        item.total = float(calc.line_total(p, item.quantity))
        return item

    def set_description(self, line_id: str, description: str) -> BillItem:
        self._ensure_open()
        item = self.get_line(line_id)
        item.description = (description or "").strip()
        return item

    def set_measurements(self, line_id: str, measurements: Mapping[str, Any]) -> BillItem:
        """
        Replace a line's measurement map. Keys are not checked against the
        category's field list; values must be text or numbers.
        """
        self._ensure_open()
        item = self.get_line(line_id)
        item.measurements = self._clean_measurements(measurements)
        return item

    @staticmethod
    def _clean_measurements(measurements: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        clean: dict[str, Any] = {}
        for key, value in (measurements or {}).items():
            if not non_empty(key):
                raise ValidationError("Measurement names cannot be empty.")
            if not (isinstance(value, str) or is_number(value)):
                raise ValidationError(f"Measurement '{key}' must be text or a number.")
            clean[str(key).strip()] = float(value) if isinstance(value, Decimal) else value
        return clean

    # ------------------------------------------------------------------
    # Totals & validation
    # ------------------------------------------------------------------
    def compute_totals(self) -> BillTotals:
        subtotal = calc.money_sum(it.total or 0 for it in self.lines)
        grand = calc.grand_total(subtotal, self.discount)
        paid = calc.money_sum(p.amount for p in self.payments)
        return BillTotals(
            subtotal=subtotal,
            discount=calc.to_money(self.discount),
            grand_total=grand,
            advance=calc.to_money(self.advance),
            paid=paid,
            due=calc.remaining_due(grand, self.advance, paid),
        )

    def validate_for_commit(self) -> None:
        """
        Raise ValidationError listing every problem (not just the first).
        """
        problems: list[str] = []

        if not self.customer_id:
            problems.append("Customer is required.")
        elif self.store.get(COL_CUSTOMERS, self.customer_id) is None:
            problems.append("Selected customer does not exist.")
        if not non_empty(self.bill_number):
            problems.append("Bill number is required.")
        if not self.date:
            problems.append("Bill date is required.")
        elif parse_iso_date(self.date) is None:
            problems.append("Bill date must be in YYYY-MM-DD format.")
        if not self.delivery_date:
            problems.append("Delivery date is required.")
        elif parse_iso_date(self.delivery_date) is None:
            problems.append("Delivery date must be in YYYY-MM-DD format.")

        if not self.lines:
            problems.append("Add at least one item.")
        for n, it in enumerate(self.lines, start=1):
            if not it.stock_id:
                problems.append(f"Item {n}: stock item is required.")
            elif self.stocks.get(it.stock_id) is None:
                problems.append(f"Item {n}: stock item no longer exists.")
            if not it.category:
                problems.append(f"Item {n}: category is required.")
            if not is_positive_int(it.quantity):
                problems.append(f"Item {n}: quantity is required.")
            if not it.total:
                problems.append(f"Item {n}: total is required.")
            if not it.measurements:
                problems.append(f"Item {n}: add measurements.")

        totals = self.compute_totals()
        if totals.discount > totals.subtotal:
            problems.append("Discount cannot exceed the bill total.")
        elif totals.advance > totals.grand_total:
            problems.append("Advance cannot exceed the grand total.")

        if problems:
            raise ValidationError(problems)

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------
    def commit(self) -> Bill:
        """
        Persist the bill and deduct stock for every line as one unit of work.

        Stock locks for every referenced item are taken in id order, stock is
        checked for all lines before anything is written, and the writes run
        inside a store transaction so a failure midway leaves no trace.
        """
        self._ensure_open()
        self.validate_for_commit()

        needed: Counter[str] = Counter()
        for it in self.lines:
            needed[it.stock_id] += it.quantity

        bill = Bill(
            bill_id=None,
            bill_number=self.bill_number,
            customer_id=self.customer_id,
            date=str(parse_iso_date(self.date)),
            delivery_date=str(parse_iso_date(self.delivery_date)),
            items=[BillItem.from_record(it.to_record()) for it in self.lines],
            discount=float(calc.to_money(self.discount)),
            advance=float(calc.to_money(self.advance)),
        )

        with self.ledger.locks.hold_many(needed), self.store.transaction():
            # the customer may have been deleted since validation
            self.store.require(COL_CUSTOMERS, self.customer_id)
            self.ledger.check_available(needed)
            saved = self.bills.insert(bill)
            for it in saved.items:
                self.ledger.record_sale(
                    it.stock_id,
                    it.quantity,
                    saved.bill_id,
                    bill_number=saved.bill_number,
                    date=saved.date,
                )

        self._committed = saved
        _log.info(
            "committed bill #%s (%s) for customer %s: %d line(s), grand total %.2f, due %.2f",
            saved.bill_number, saved.bill_id, saved.customer_id,
            len(saved.items), saved.grand_total, saved.due,
        )
        return saved
