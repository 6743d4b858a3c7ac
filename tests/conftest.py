# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own store (MemoryStore by default)
# - `any_store` runs a test against both MemoryStore and a temp-file SqliteStore
# - Seed helpers create stock/customers through the repositories, never raw records
# ---------------------------------------------------------------------

from __future__ import annotations

import pytest

from tailor_shop.config import default_category_fields
from tailor_shop.database import MemoryStore, SqliteStore
from tailor_shop.database.repositories import CustomersRepo, StocksRepo
from tailor_shop.modules.billing import BillAggregate
from tailor_shop.modules.inventory import StockLedger
from tailor_shop.modules.payments.ledger import PaymentLedger

SHIRT_MEASUREMENTS = {"length": 30, "chest": 40, "waist": 34, "neck": "15.5"}


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        yield MemoryStore()
        return
    st = SqliteStore(tmp_path / "shop.db")
    try:
        yield st
    finally:
        st.close()


@pytest.fixture()
def categories():
    return default_category_fields()


@pytest.fixture()
def ledger(store):
    return StockLedger(store)


@pytest.fixture()
def payments(store):
    return PaymentLedger(store)


# ---------- Seed data ----------
@pytest.fixture()
def ids(store) -> dict:
    """Common stock/customer ids used throughout the billing tests."""
    stocks = StocksRepo(store)
    customers = CustomersRepo(store)
    shirt = stocks.create(name="Premium Cotton Shirt", code="PCS001", category="Shirt", quantity=50, date="2024-01-10")
    pants = stocks.create(name="Casual Pants", code="CP003", category="Pants", quantity=40, date="2024-01-12")
    coat = stocks.create(name="Formal Coat", code="FC002", category="Coat/Shafari", quantity=2, date="2024-01-11")
    alice = customers.create("Alice", "0300-1111111", "1 Main St")
    bob = customers.create("Bob", "0300-2222222", "2 Main St", referrer_id=alice.customer_id)
    return {
        "shirt": shirt.stock_id,
        "pants": pants.stock_id,
        "coat": coat.stock_id,
        "alice": alice.customer_id,
        "bob": bob.customer_id,
    }


@pytest.fixture()
def make_bill(store, categories, ids):
    """
    Factory: compose a ready-to-commit bill with one Shirt line.
    Keyword overrides go straight to BillAggregate.
    """
    def _make(number="B-001", *, total=1000, quantity=1, stock="shirt", measurements=None, **kw):
        kw.setdefault("customer_id", ids["alice"])
        kw.setdefault("date", "2024-02-01")
        kw.setdefault("delivery_date", "2024-02-10")
        agg = BillAggregate(store, categories, bill_number=number, **kw)
        agg.add_line(
            ids[stock],
            quantity,
            total=total,
            measurements=SHIRT_MEASUREMENTS if measurements is None else measurements,
        )
        return agg

    return _make
