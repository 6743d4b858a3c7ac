"""
Stock ledger: quantity-on-hand per stock item plus its movement history.

Every quantity change after creation goes through adjust()/record_sale(),
which update the stock record and append one row to `stock-transactions`
in the same store transaction. reconstruct_ledger() folds those rows over
the opening balance, so its last running balance equals quantity-on-hand.

Conventions:
- Quantities are ints; a delta of 0 is rejected.
- A movement that would take quantity below zero raises
  InsufficientStockError and changes nothing.
- Movements of one stock item are serialized with a per-stock lock.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Mapping, Optional

from ...constants import (
    COL_STOCK_TRANSACTIONS,
    COL_STOCKS,
    TXN_ADJUSTMENT,
    TXN_OPENING,
    TXN_SALE,
)
from ...database.repositories.stocks_repo import Stock, StocksRepo
from ...database.store import RecordStore
from ...errors import InsufficientStockError, ValidationError
from ...utils.helpers import today_str
from ...utils.locks import KeyedLocks, locks_for
from ...utils.validators import is_positive_int, parse_iso_date

_log = logging.getLogger(__name__)

# kinds accepted from callers; 'opening' is derived from the stock record itself
POSTABLE_KINDS: tuple[str, ...] = (TXN_SALE, TXN_ADJUSTMENT)

# manual adjustment form: direction -> sign
DIRECTIONS = {"add": 1, "deduct": -1}


@dataclass(frozen=True)
class StockTransaction:
    date: str
    kind: str
    delta: int
    balance: int
    bill_id: str | None = None
    reference: str = ""
    txn_id: str | None = None


class StockLedger:
    def __init__(self, store: RecordStore, locks: Optional[KeyedLocks] = None):
        self.store = store
        self.stocks = StocksRepo(store)
        self.locks = locks or locks_for(store, "stock")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def on_hand(self, stock_id: str) -> int:
        return self.stocks.require(stock_id).quantity

    def _transactions_for(self, stock_id: str) -> list[dict]:
        return [t for t in self.store.list(COL_STOCK_TRANSACTIONS) if t.get("stockId") == stock_id]

    def reconstruct_ledger(self, stock_id: str) -> Iterator[StockTransaction]:
        """
        Chronological movements for one stock item with running balances.

        Starts with the opening entry, then every posted movement ordered by
        date ascending; same-day movements keep posting order. Reads a
        snapshot up front (so a missing stock raises immediately) and yields
        lazily. Read-only.
        """
        stock = self.stocks.require(stock_id)
        rows = self._transactions_for(stock_id)
        # store.list() is insertion-ordered and sort() is stable
        rows.sort(key=lambda t: t.get("date") or "")
        return self._fold(stock, rows)

    @staticmethod
    def _fold(stock: Stock, rows: list[dict]) -> Iterator[StockTransaction]:
        balance = stock.opening_quantity
        yield StockTransaction(
            date=stock.date,
            kind=TXN_OPENING,
            delta=stock.opening_quantity,
            balance=balance,
            reference="Opening Stock",
        )
        for t in rows:
            delta = int(t.get("delta", 0))
            balance += delta
            if t.get("kind") == TXN_SALE and t.get("billNumber"):
                ref = f"Bill #{t['billNumber']}"
            else:
                ref = t.get("reason") or ""
            yield StockTransaction(
                date=t.get("date", ""),
                kind=t.get("kind", TXN_ADJUSTMENT),
                delta=delta,
                balance=balance,
                bill_id=t.get("billId") or None,
                reference=ref,
                txn_id=t.get("id"),
            )

    def ledger_balance(self, stock_id: str) -> int:
        """Final running balance of the reconstructed ledger."""
        last = None
        for last in self.reconstruct_ledger(stock_id):
            pass
        return last.balance if last is not None else 0

    def is_consistent(self, stock_id: str) -> bool:
        """True when the reconstructed balance matches quantity-on-hand."""
        return self.ledger_balance(stock_id) == self.on_hand(stock_id)

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------
    def adjust(
        self,
        stock_id: str,
        quantity_delta: int,
        kind: str = TXN_ADJUSTMENT,
        reason: str = "",
        *,
        date: Optional[str] = None,
        bill_id: Optional[str] = None,
        bill_number: Optional[str] = None,
    ) -> int:
        """
        Apply a signed delta and post it to the ledger. Returns the new quantity.
        """
        if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int) or quantity_delta == 0:
            raise ValidationError("Quantity change must be a non-zero whole number.")
        if kind not in POSTABLE_KINDS:
            raise ValidationError(f"Unsupported stock movement kind: {kind}")
        if kind == TXN_SALE and quantity_delta > 0:
            raise ValidationError("A sale must reduce stock.")
        when = parse_iso_date(date) if date is not None else None
        if date is not None and when is None:
            raise ValidationError("Date must be in YYYY-MM-DD format.")

        with self.locks.hold(stock_id), self.store.transaction():
            stock = self.stocks.require(stock_id)
            new_qty = stock.quantity + quantity_delta
            if new_qty < 0:
                _log.warning(
                    "rejected %s of %d on stock %s (on hand %d)",
                    kind, -quantity_delta, stock_id, stock.quantity,
                )
                raise InsufficientStockError(stock_id, stock.quantity, -quantity_delta)
            self._post(stock, quantity_delta, kind, reason, str(when or today_str()), bill_id, bill_number)

        _log.info("stock %s %s %+d -> %d", stock_id, kind, quantity_delta, new_qty)
        return new_qty

    def record_sale(
        self,
        stock_id: str,
        quantity: int,
        bill_id: Optional[str] = None,
        *,
        bill_number: Optional[str] = None,
        date: Optional[str] = None,
    ) -> int:
        """Deduct `quantity` (>= 1) for a bill line. Returns the new quantity."""
        if not is_positive_int(quantity):
            raise ValidationError("Sale quantity must be a whole number of at least 1.")
        reason = f"Bill #{bill_number}" if bill_number else "Sale"
        return self.adjust(
            stock_id,
            -quantity,
            TXN_SALE,
            reason,
            date=date,
            bill_id=bill_id,
            bill_number=bill_number,
        )

    def apply_adjustment(self, stock_id: str, quantity: int, direction: str, reason: str = "") -> int:
        """
        Manual adjustment form: a positive quantity plus 'add' or 'deduct'.
        """
        sign = DIRECTIONS.get((direction or "").strip().lower())
        if sign is None:
            raise ValidationError("Adjustment type must be 'add' or 'deduct'.")
        if not is_positive_int(quantity):
            raise ValidationError("Adjustment quantity must be a whole number of at least 1.")
        return self.adjust(stock_id, sign * quantity, TXN_ADJUSTMENT, reason)

    # ------------------------------------------------------------------
    # Used by BillAggregate.commit() while it holds the stock locks
    # ------------------------------------------------------------------
    def check_available(self, requirements: Mapping[str, int]) -> None:
        """
        Raise InsufficientStockError for the first stock (sorted by id) that
        cannot cover its required quantity. Nothing is written.
        """
        for stock_id in sorted(requirements):
            need = requirements[stock_id]
            on_hand = self.stocks.require(stock_id).quantity
            if need > on_hand:
                _log.warning("rejected sale of %d on stock %s (on hand %d)", need, stock_id, on_hand)
                raise InsufficientStockError(stock_id, on_hand, need)

    def _post(
        self,
        stock: Stock,
        delta: int,
        kind: str,
        reason: str,
        date: str,
        bill_id: Optional[str],
        bill_number: Optional[str],
    ) -> None:
        stock.quantity += delta
        self.store.put(COL_STOCKS, stock.stock_id, stock.to_record())
        self.store.append(
            COL_STOCK_TRANSACTIONS,
            {
                "stockId": stock.stock_id,
                "date": date,
                "kind": kind,
                "delta": delta,
                "reason": (reason or "").strip(),
                "billId": bill_id,
                "billNumber": bill_number,
            },
        )
