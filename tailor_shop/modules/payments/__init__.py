"""
Payments package.

- calculations: pure money helpers (no store access).
- status:       settlement status labels/ordering for badges.
- ledger:       PaymentLedger (import from tailor_shop.modules.payments.ledger).

The ledger is not re-exported here: repositories import `calculations` and
must not pull the ledger (which imports repositories) in with it.
"""
