from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...constants import COL_STOCKS, COL_STOCK_TRANSACTIONS, LOW_STOCK_THRESHOLD
from ...errors import DomainError, NotFoundError, ValidationError
from ...utils.helpers import today_str
from ...utils.validators import non_empty, parse_iso_date
from ..store import RecordStore
from .bills_repo import BillsRepo


@dataclass
class Stock:
    stock_id: str | None
    name: str
    code: str
    category: str
    quantity: int
    opening_quantity: int
    date: str
    hs_code: str = ""
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_record(cls, rec: dict) -> "Stock":
        qty = int(rec.get("quantity", 0))
        return cls(
            stock_id=rec.get("id"),
            name=rec.get("name", ""),
            code=rec.get("code", ""),
            category=rec.get("category", ""),
            quantity=qty,
            # records written before opening balances were tracked start from their quantity
            opening_quantity=int(rec.get("openingQuantity", qty)),
            date=rec.get("date", ""),
            hs_code=rec.get("hsCode", ""),
            created_at=rec.get("createdAt"),
            updated_at=rec.get("updatedAt"),
        )

    def to_record(self) -> dict:
        rec = {
            "name": self.name,
            "code": self.code,
            "category": self.category,
            "quantity": self.quantity,
            "openingQuantity": self.opening_quantity,
            "date": self.date,
            "hsCode": self.hs_code,
        }
        if self.stock_id:
            rec["id"] = self.stock_id
        if self.created_at:
            rec["createdAt"] = self.created_at
        return rec


class StocksRepo:
    """
    Stock items. Quantity-on-hand is owned by the stock ledger; this repo only
    sets it once (the opening quantity) and otherwise edits descriptive fields.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str:
        return (s or "").strip()

    @staticmethod
    def _check_fields(name, code, category, date) -> list[str]:
        problems = []
        if not non_empty(name):
            problems.append("Name cannot be empty.")
        if not non_empty(code):
            problems.append("Code cannot be empty.")
        if not non_empty(category):
            problems.append("Category cannot be empty.")
        if date is not None and parse_iso_date(date) is None:
            problems.append("Date must be in YYYY-MM-DD format.")
        return problems

    # ---- Queries ----------------------------------------------------------

    def get(self, stock_id: str) -> Stock | None:
        rec = self.store.get(COL_STOCKS, stock_id)
        return Stock.from_record(rec) if rec else None

    def require(self, stock_id: str) -> Stock:
        s = self.get(stock_id)
        if s is None:
            raise NotFoundError(COL_STOCKS, stock_id)
        return s

    def list_stocks(self) -> list[Stock]:
        return [Stock.from_record(r) for r in self.store.list(COL_STOCKS)]

    def search(self, term: str) -> list[Stock]:
        """Case-insensitive match on name, code or category."""
        needle = (term or "").strip().lower()
        if not needle:
            return self.list_stocks()
        return [
            s for s in self.list_stocks()
            if needle in s.name.lower() or needle in s.code.lower() or needle in s.category.lower()
        ]

    def find_by_code(self, code: str) -> Stock | None:
        c = self._normalize_text(code)
        for s in self.list_stocks():
            if s.code == c:
                return s
        return None

    def low_stock(self, threshold: int = LOW_STOCK_THRESHOLD) -> list[Stock]:
        return [s for s in self.list_stocks() if s.quantity < threshold]

    # ---- Mutations --------------------------------------------------------

    def create(
        self,
        *,
        name: str,
        code: str,
        category: str,
        quantity: int,
        date: Optional[str] = None,
        hs_code: str = "",
    ) -> Stock:
        """
        Insert a stock item; `quantity` becomes its opening balance.
        """
        problems = self._check_fields(name, code, category, date)
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
            problems.append("Opening quantity must be a whole number of zero or more.")
        if problems:
            raise ValidationError(problems)

        stock = Stock(
            stock_id=None,
            name=self._normalize_text(name),
            code=self._normalize_text(code),
            category=self._normalize_text(category),
            quantity=quantity,
            opening_quantity=quantity,
            date=str(parse_iso_date(date) or today_str()),
            hs_code=self._normalize_text(hs_code),
        )
        return Stock.from_record(self.store.append(COL_STOCKS, stock.to_record()))

    def update(
        self,
        stock_id: str,
        *,
        name: str,
        code: str,
        category: str,
        date: Optional[str] = None,
        hs_code: str = "",
    ) -> Stock:
        """
        Update descriptive fields. Bills keep the category they copied at the
        time a line was added, so renaming a category here is not retroactive.
        """
        problems = self._check_fields(name, code, category, date)
        if problems:
            raise ValidationError(problems)
        with self.store.transaction():
            current = self.require(stock_id)
            current.name = self._normalize_text(name)
            current.code = self._normalize_text(code)
            current.category = self._normalize_text(category)
            if date is not None:
                current.date = str(parse_iso_date(date))
            current.hs_code = self._normalize_text(hs_code)
            return Stock.from_record(self.store.put(COL_STOCKS, stock_id, current.to_record()))

    def delete(self, stock_id: str) -> None:
        """
        Remove a stock item that no bill references. Referenced items are kept
        so historical bills and the ledger never point at nothing.
        """
        with self.store.transaction():
            used = BillsRepo(self.store).list_referencing_stock(stock_id)
            if used:
                raise DomainError(f"Stock is used on bill #{used[0].bill_number} and cannot be deleted.")
            if not self.store.remove(COL_STOCKS, stock_id):
                raise NotFoundError(COL_STOCKS, stock_id)
            for txn in self.store.list(COL_STOCK_TRANSACTIONS):
                if txn.get("stockId") == stock_id:
                    self.store.remove(COL_STOCK_TRANSACTIONS, txn["id"])
