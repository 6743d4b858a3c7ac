"""
tailor_shop: stock, customer, billing and settlement core for a tailoring
back office.

Usage:
    from tailor_shop.database import get_store
    from tailor_shop.modules.inventory import StockLedger
    from tailor_shop.modules.billing import BillAggregate, MeasurementCarryForward
    from tailor_shop.modules.payments.ledger import PaymentLedger
"""

__version__ = "0.3.0"
