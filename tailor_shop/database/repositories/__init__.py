# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from tailor_shop.database.repositories import (
        StocksRepo, Stock,
        CustomersRepo, Customer,
        BillsRepo, Bill, BillItem, Payment,
        OrganizationRepo, Organization,
        TailorCountersRepo, TailorCounter,
        ItemStatusRepo, ItemStatusEntry,
    )
"""

# ----------------- Stocks ------------------
from .stocks_repo import StocksRepo, Stock

# ---------------- Customers ----------------
from .customers_repo import CustomersRepo, Customer

# ------------------ Bills ------------------
from .bills_repo import BillsRepo, Bill, BillItem, Payment

# -------------- Organization ---------------
from .organization_repo import OrganizationRepo, Organization

# ------------- Tailor counters -------------
from .tailor_counters_repo import TailorCountersRepo, TailorCounter

# --------------- Item status ---------------
from .item_status_repo import ItemStatusRepo, ItemStatusEntry

__all__ = [
    "StocksRepo",
    "Stock",
    "CustomersRepo",
    "Customer",
    "BillsRepo",
    "Bill",
    "BillItem",
    "Payment",
    "OrganizationRepo",
    "Organization",
    "TailorCountersRepo",
    "TailorCounter",
    "ItemStatusRepo",
    "ItemStatusEntry",
]
