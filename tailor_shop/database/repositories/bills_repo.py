from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ...constants import COL_BILLS, COL_CUSTOMERS
from ...errors import NotFoundError
from ...modules.payments import calculations as calc
from ..store import RecordStore


@dataclass
class Payment:
    payment_id: str
    date: str
    amount: float
    created_at: str | None = None

    @classmethod
    def from_record(cls, rec: dict) -> "Payment":
        return cls(
            payment_id=str(rec.get("id", "")),
            date=rec.get("date", ""),
            amount=float(rec.get("amount", 0.0)),
            created_at=rec.get("createdAt"),
        )

    def to_record(self) -> dict:
        return {
            "id": self.payment_id,
            "date": self.date,
            "amount": self.amount,
            "createdAt": self.created_at,
        }


@dataclass
class BillItem:
    item_id: str
    stock_id: str | None
    category: str | None
    quantity: int
    price: float
    total: float | None
    description: str = ""
    measurements: dict = field(default_factory=dict)

    @classmethod
    def from_record(cls, rec: dict) -> "BillItem":
        total = rec.get("total")
        return cls(
            item_id=str(rec.get("id", "")),
            stock_id=rec.get("stockId") or None,
            category=rec.get("category") or None,
            quantity=int(rec.get("quantity", 0)),
            price=float(rec.get("price", 0.0)),
            total=float(total) if total is not None else None,
            description=rec.get("description") or "",
            measurements=dict(rec.get("measurements") or {}),
        )

    def to_record(self) -> dict:
        return {
            "id": self.item_id,
            "stockId": self.stock_id,
            "category": self.category,
            "quantity": self.quantity,
            "price": self.price,
            "total": self.total,
            "description": self.description,
            "measurements": dict(self.measurements),
        }


@dataclass
class Bill:
    bill_id: str | None
    bill_number: str
    customer_id: str
    date: str
    delivery_date: str
    items: list[BillItem] = field(default_factory=list)
    total: float = 0.0
    discount: float = 0.0
    grand_total: float = 0.0
    advance: float = 0.0
    due: float = 0.0
    payments: list[Payment] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def paid_amount(self) -> float:
        """Σ recorded payments, advance excluded."""
        return float(calc.money_sum(p.amount for p in self.payments))

    def refresh_totals(self) -> "Bill":
        """Recompute subtotal, grand total and due from lines, discount, advance and payments."""
        subtotal = calc.money_sum(it.total or 0 for it in self.items)
        grand = calc.grand_total(subtotal, self.discount)
        due = calc.remaining_due(grand, self.advance, calc.money_sum(p.amount for p in self.payments))
        self.total = float(subtotal)
        self.grand_total = float(grand)
        self.due = float(due)
        return self

    @classmethod
    def from_record(cls, rec: dict) -> "Bill":
        return cls(
            bill_id=rec.get("id"),
            bill_number=rec.get("billNumber", ""),
            customer_id=rec.get("customerId", ""),
            date=rec.get("date", ""),
            delivery_date=rec.get("deliveryDate", ""),
            items=[BillItem.from_record(r) for r in rec.get("items") or []],
            total=float(rec.get("total", 0.0)),
            discount=float(rec.get("discount", 0.0)),
            grand_total=float(rec.get("grandTotal", 0.0)),
            advance=float(rec.get("advance", 0.0)),
            due=float(rec.get("due", 0.0)),
            payments=[Payment.from_record(r) for r in rec.get("payments") or []],
            created_at=rec.get("createdAt"),
            updated_at=rec.get("updatedAt"),
        )

    def to_record(self) -> dict:
        rec = {
            "billNumber": self.bill_number,
            "customerId": self.customer_id,
            "date": self.date,
            "deliveryDate": self.delivery_date,
            "items": [it.to_record() for it in self.items],
            "total": self.total,
            "discount": self.discount,
            "grandTotal": self.grand_total,
            "advance": self.advance,
            "due": self.due,
            "payments": [p.to_record() for p in self.payments],
        }
        if self.bill_id:
            rec["id"] = self.bill_id
        if self.created_at:
            rec["createdAt"] = self.created_at
        return rec


class BillsRepo:
    """
    Bills as stored records. Writes always go through refresh_totals() so the
    stored total/grandTotal/due can never drift from lines and payments.

    Creating a bill (with its stock deductions) belongs to BillAggregate.commit();
    appending payments belongs to PaymentLedger.add_payment().
    """

    def __init__(self, store: RecordStore):
        self.store = store

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def get(self, bill_id: str) -> Bill | None:
        rec = self.store.get(COL_BILLS, bill_id)
        return Bill.from_record(rec) if rec else None

    def require(self, bill_id: str) -> Bill:
        b = self.get(bill_id)
        if b is None:
            raise NotFoundError(COL_BILLS, bill_id)
        return b

    def list_bills(self) -> list[Bill]:
        return [Bill.from_record(r) for r in self.store.list(COL_BILLS)]

    def list_by_customer(self, customer_id: str, *, exclude_bill_id: Optional[str] = None) -> list[Bill]:
        """
        Bills for one customer, newest issue date first (ties: newest created first).
        """
        bills = [
            b for b in self.list_bills()
            if b.customer_id == customer_id and b.bill_id != exclude_bill_id
        ]
        # list_bills() is in insertion order; reverse first so the stable sort keeps later-created first on ties
        bills.reverse()
        bills.sort(key=lambda b: b.date or "", reverse=True)
        return bills

    def find_by_number(self, bill_number: str) -> list[Bill]:
        """Bill numbers are unique by convention only, so this may return several."""
        num = (bill_number or "").strip()
        return [b for b in self.list_bills() if b.bill_number == num]

    def search(self, term: str) -> list[Bill]:
        """Case-insensitive match on bill number or the customer's name or phone."""
        needle = (term or "").strip().lower()
        bills = self.list_bills()
        if not needle:
            return bills
        matching_customers = {
            c["id"]
            for c in self.store.list(COL_CUSTOMERS)
            if needle in str(c.get("name", "")).lower() or needle in str(c.get("phone", "")).lower()
        }
        return [b for b in bills if needle in b.bill_number.lower() or b.customer_id in matching_customers]

    def list_referencing_stock(self, stock_id: str) -> list[Bill]:
        return [b for b in self.list_bills() if any(it.stock_id == stock_id for it in b.items)]

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def insert(self, bill: Bill) -> Bill:
        bill.refresh_totals()
        return Bill.from_record(self.store.append(COL_BILLS, bill.to_record()))

    def save(self, bill: Bill) -> Bill:
        if not bill.bill_id:
            raise ValueError("save() requires an existing bill id; use insert() for new bills.")
        bill.refresh_totals()
        return Bill.from_record(self.store.put(COL_BILLS, bill.bill_id, bill.to_record()))

