from __future__ import annotations

from dataclasses import dataclass

from ...constants import COL_BILLS, COL_CUSTOMERS
from ...errors import DomainError, NotFoundError, ValidationError
from ...utils.validators import non_empty
from ..store import RecordStore


@dataclass
class Customer:
    customer_id: str | None
    name: str
    phone: str
    address: str
    avatar: str | None = None
    description: str | None = None
    referrer_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_record(cls, rec: dict) -> "Customer":
        return cls(
            customer_id=rec.get("id"),
            name=rec.get("name", ""),
            phone=rec.get("phone", ""),
            address=rec.get("address", ""),
            avatar=rec.get("avatar") or None,
            description=rec.get("description") or None,
            referrer_id=rec.get("referrerId") or None,
            created_at=rec.get("createdAt"),
            updated_at=rec.get("updatedAt"),
        )

    def to_record(self) -> dict:
        rec = {
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "avatar": self.avatar,
            "description": self.description,
            "referrerId": self.referrer_id,
        }
        if self.customer_id:
            rec["id"] = self.customer_id
        if self.created_at:
            rec["createdAt"] = self.created_at
        return rec


class CustomersRepo:
    def __init__(self, store: RecordStore):
        self.store = store

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        # Gentle normalization: trim surrounding whitespace (no extra assumptions)
        return s.strip()

    def _check(self, name, phone, referrer_id, customer_id=None) -> None:
        problems = []
        if not non_empty(name):
            problems.append("Name cannot be empty.")
        if not non_empty(phone):
            problems.append("Phone cannot be empty.")
        if referrer_id:
            if customer_id is not None and referrer_id == customer_id:
                problems.append("A customer cannot be their own referrer.")
            elif self.store.get(COL_CUSTOMERS, referrer_id) is None:
                problems.append("Referrer does not exist.")
        if problems:
            raise ValidationError(problems)

    # ---- Queries ----------------------------------------------------------

    def list_customers(self) -> list[Customer]:
        return [Customer.from_record(r) for r in self.store.list(COL_CUSTOMERS)]

    def search(self, term: str) -> list[Customer]:
        """
        Case-insensitive match on id, name, phone or address.
        """
        needle = (term or "").strip().lower()
        if not needle:
            return self.list_customers()
        out = []
        for c in self.list_customers():
            hay = (c.customer_id or "", c.name, c.phone, c.address or "")
            if any(needle in h.lower() for h in hay):
                out.append(c)
        return out

    def get(self, customer_id: str) -> Customer | None:
        rec = self.store.get(COL_CUSTOMERS, customer_id)
        return Customer.from_record(rec) if rec else None

    def require(self, customer_id: str) -> Customer:
        c = self.get(customer_id)
        if c is None:
            raise NotFoundError(COL_CUSTOMERS, customer_id)
        return c

    def get_referrer(self, customer: Customer) -> Customer | None:
        """
        Resolve the referrer one hop only. A dangling id resolves to None.
        """
        if not customer.referrer_id:
            return None
        return self.get(customer.referrer_id)

    # ---- Mutations --------------------------------------------------------

    def create(
        self,
        name: str,
        phone: str,
        address: str = "",
        *,
        avatar: str | None = None,
        description: str | None = None,
        referrer_id: str | None = None,
    ) -> Customer:
        self._check(name, phone, referrer_id)
        c = Customer(
            customer_id=None,
            name=self._normalize_text(name),
            phone=self._normalize_text(phone),
            address=self._normalize_text(address) or "",
            avatar=avatar or None,
            description=self._normalize_text(description) or None,
            referrer_id=referrer_id or None,
        )
        return Customer.from_record(self.store.append(COL_CUSTOMERS, c.to_record()))

    def update(
        self,
        customer_id: str,
        name: str,
        phone: str,
        address: str = "",
        *,
        avatar: str | None = None,
        description: str | None = None,
        referrer_id: str | None = None,
    ) -> Customer:
        with self.store.transaction():
            current = self.require(customer_id)
            self._check(name, phone, referrer_id, customer_id)
            current.name = self._normalize_text(name)
            current.phone = self._normalize_text(phone)
            current.address = self._normalize_text(address) or ""
            current.avatar = avatar or None
            current.description = self._normalize_text(description) or None
            current.referrer_id = referrer_id or None
            return Customer.from_record(self.store.put(COL_CUSTOMERS, customer_id, current.to_record()))

    def delete(self, customer_id: str) -> None:
        """
        Refuse while bills reference the customer. Customers naming this one as
        referrer keep the id; it simply stops resolving.
        """
        with self.store.transaction():
            for bill in self.store.list(COL_BILLS):
                if bill.get("customerId") == customer_id:
                    raise DomainError(
                        f"Customer has bill #{bill.get('billNumber', '')} and cannot be deleted."
                    )
            if not self.store.remove(COL_CUSTOMERS, customer_id):
                raise NotFoundError(COL_CUSTOMERS, customer_id)
