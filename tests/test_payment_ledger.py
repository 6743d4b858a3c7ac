"""
Tests for recording payments against committed bills.

Suite A – settlement scenarios
Suite B – rejected payments
Suite C – status and history
"""

from __future__ import annotations

import threading
from decimal import Decimal

import pytest

from tailor_shop.database.repositories import BillsRepo
from tailor_shop.errors import NotFoundError, OverpaymentError, ValidationError
from tailor_shop.modules.payments.ledger import PaymentLedger, settlement_status_of


@pytest.fixture()
def bill(make_bill):
    """Committed bill: total 1000, discount 100, advance 200 -> due 700."""
    return make_bill(total=1000, discount=100, advance=200).commit()


# ---------------------------------------------------------------------------
# Suite A – settlement scenarios
# ---------------------------------------------------------------------------

def test_a0_full_settlement(payments, bill):
    assert PaymentLedger.settlement_status(bill) == "partial"
    saved = payments.add_payment(bill.bill_id, "2024-02-15", 700)
    assert saved.due == 0.0
    assert PaymentLedger.settlement_status(saved) == "paid"
    assert PaymentLedger.paid_to_date(saved) == Decimal("900.00")
    assert saved.paid_amount == 700.0


def test_a1_instalments(store, payments, bill):
    payments.add_payment(bill.bill_id, "2024-02-12", 250)
    payments.add_payment(bill.bill_id, "2024-02-20", 449.99)
    stored = BillsRepo(store).require(bill.bill_id)
    assert stored.due == 0.01
    assert PaymentLedger.remaining_due(stored) == Decimal("0.01")
    assert PaymentLedger.settlement_status(stored) == "partial"

    final = payments.add_payment(bill.bill_id, "2024-02-21", 0.01)
    assert final.due == 0.0
    assert PaymentLedger.settlement_status(final) == "paid"


def test_a2_payment_date_defaults_to_today(payments, bill, monkeypatch):
    import tailor_shop.modules.payments.ledger as ledger_mod

    monkeypatch.setattr(ledger_mod, "today_str", lambda: "2024-03-03")
    saved = payments.add_payment(bill.bill_id, None, 100)
    assert saved.payments[-1].date == "2024-03-03"


# ---------------------------------------------------------------------------
# Suite B – rejected payments
# ---------------------------------------------------------------------------

def test_b0_overpayment_rejected_and_nothing_written(store, payments, bill):
    """B0: 800 against a due of 700 is refused; the bill is unchanged."""
    with pytest.raises(OverpaymentError) as e:
        payments.add_payment(bill.bill_id, "2024-02-15", 800)
    assert (e.value.amount, e.value.due) == (800.0, 700.0)

    stored = BillsRepo(store).require(bill.bill_id)
    assert stored.due == 700.0
    assert stored.payments == []


def test_b1_paid_bill_accepts_nothing_more(payments, bill):
    payments.add_payment(bill.bill_id, "2024-02-15", 700)
    with pytest.raises(OverpaymentError):
        payments.add_payment(bill.bill_id, "2024-02-16", 0.01)


@pytest.mark.parametrize(
    "amount",
    [0, -10, "100", None, True, float("nan"), float("inf"), Decimal("Infinity"), Decimal("NaN"), Decimal("-5")],
)
def test_b2_invalid_amounts(payments, bill, amount):
    with pytest.raises(ValidationError):
        payments.add_payment(bill.bill_id, "2024-02-15", amount)


def test_b3_sub_cent_amount_rounds_to_zero(payments, bill):
    with pytest.raises(ValidationError):
        payments.add_payment(bill.bill_id, "2024-02-15", 0.004)


def test_b4_bad_date_and_unknown_bill(payments, bill):
    with pytest.raises(ValidationError):
        payments.add_payment(bill.bill_id, "15/02/2024", 10)
    with pytest.raises(NotFoundError):
        payments.add_payment("no-such-bill", "2024-02-15", 10)


def test_b5_concurrent_payments_never_overpay(store, payments, bill):
    """B5: ten threads each try to pay 100 against a due of 700; exactly 7 succeed."""
    ok, refused = [], []
    gate = threading.Barrier(10)

    def pay():
        gate.wait()
        try:
            payments.add_payment(bill.bill_id, "2024-02-15", 100)
            ok.append(1)
        except OverpaymentError:
            refused.append(1)

    threads = [threading.Thread(target=pay) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert (len(ok), len(refused)) == (7, 3)
    stored = BillsRepo(store).require(bill.bill_id)
    assert stored.due == 0.0
    assert len(stored.payments) == 7


# ---------------------------------------------------------------------------
# Suite C – status and history
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "grand, advance, paid, expected",
    [
        (900, 0, [], "unpaid"),
        (900, 200, [], "partial"),
        (900, 0, [100], "partial"),
        (900, 200, [300, 400], "paid"),
        (900, 900, [], "paid"),
        (0, 0, [], "paid"),
    ],
)
def test_c0_settlement_status(grand, advance, paid, expected):
    assert settlement_status_of(grand, advance, paid) == expected


def test_c1_unpaid_without_advance(make_bill):
    b = make_bill(total=500).commit()
    assert PaymentLedger.settlement_status(b) == "unpaid"


def test_c2_history_is_date_ordered(payments, bill):
    payments.add_payment(bill.bill_id, "2024-02-20", 10)
    payments.add_payment(bill.bill_id, "2024-02-12", 20)
    payments.add_payment(bill.bill_id, "2024-02-20", 30)
    history = payments.payment_history(bill.bill_id)
    assert [(p.date, p.amount) for p in history] == [
        ("2024-02-12", 20.0),
        ("2024-02-20", 10.0),
        ("2024-02-20", 30.0),
    ]
    assert len({p.payment_id for p in history}) == 3


def test_c3_works_on_sqlite(any_store, categories):
    from tailor_shop.database.repositories import CustomersRepo, StocksRepo
    from tailor_shop.modules.billing import BillAggregate

    sid = StocksRepo(any_store).create(name="Kurta", code="K1", category="Shirt", quantity=5).stock_id
    cid = CustomersRepo(any_store).create("Yasir", "0300").customer_id
    agg = BillAggregate(
        any_store, categories, bill_number="7", customer_id=cid,
        date="2024-06-01", delivery_date="2024-06-07", advance=50,
    )
    agg.add_line(sid, 1, total=300, measurements={"length": 40})
    b = agg.commit()

    ledger = PaymentLedger(any_store)
    with pytest.raises(OverpaymentError):
        ledger.add_payment(b.bill_id, "2024-06-07", 251)
    assert ledger.add_payment(b.bill_id, "2024-06-07", 250).due == 0.0
    assert BillsRepo(any_store).require(b.bill_id).payments[0].amount == 250.0
