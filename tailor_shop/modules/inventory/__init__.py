from .ledger import StockLedger, StockTransaction

__all__ = [
    "StockLedger",
    "StockTransaction",
]
