"""
Tests for bill composition, validation and the commit unit of work.

Suite A – totals and line pricing
Suite B – validation
Suite C – commit and stock deductions
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from tailor_shop.database.repositories import BillsRepo, StocksRepo
from tailor_shop.errors import (
    BillCommittedError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from tailor_shop.modules.billing import BillAggregate
from tailor_shop.modules.inventory import StockLedger


# ---------------------------------------------------------------------------
# Suite A – totals and line pricing
# ---------------------------------------------------------------------------

def test_a0_scenario_totals(make_bill):
    """A0: subtotal 1000, discount 100, advance 200 -> grand 900, due 700."""
    agg = make_bill(total=1000, discount=100, advance=200)
    t = agg.compute_totals()
    assert t.subtotal == Decimal("1000.00")
    assert t.grand_total == Decimal("900.00")
    assert t.due == Decimal("700.00")
    assert t.grand_total == t.subtotal - t.discount
    assert t.due == t.grand_total - t.advance - t.paid


def test_a1_totals_follow_every_change(make_bill, ids):
    agg = make_bill(total=500)
    line = agg.add_line(ids["pants"], 2, price=150, measurements={"waist": 32})
    assert agg.compute_totals().subtotal == Decimal("800.00")

    agg.set_discount(50)
    agg.set_advance(100)
    assert agg.compute_totals().due == Decimal("650.00")

    agg.remove_line(line.item_id)
    t = agg.compute_totals()
    assert (t.subtotal, t.grand_total, t.due) == (Decimal("500.00"), Decimal("450.00"), Decimal("350.00"))


def test_a2_price_entry_derives_total(make_bill, ids):
    agg = make_bill()
    line = agg.add_line(ids["pants"], 3, price=120.5)
    assert line.total == 361.5
    assert line.price == 120.5
    assert line.category == "Pants"


def test_a3_total_is_authoritative_when_quantity_changes(make_bill, ids):
    """A3: editing quantity keeps the entered total; unit price is re-derived."""
    agg = make_bill()
    line = agg.add_line(ids["pants"], 2, total=1000)
    assert line.price == 500.0

    agg.set_quantity(line.item_id, 4)
    assert line.total == 1000.0
    assert line.price == 250.0

    agg.set_total(line.item_id, 1200)
    assert line.price == 300.0

    agg.set_price(line.item_id, 100)
    assert line.total == 400.0


def test_a4_add_line_input_rules(make_bill, ids):
    agg = make_bill()
    with pytest.raises(ValidationError):
        agg.add_line(ids["pants"], 1)  # neither price nor total
    with pytest.raises(ValidationError):
        agg.add_line(ids["pants"], 1, price=10, total=10)  # both
    for bad_qty in (0, -1, 1.5, True):
        with pytest.raises(ValidationError):
            agg.add_line(ids["pants"], bad_qty, total=10)
    with pytest.raises(ValidationError):
        agg.add_line(ids["pants"], 1, total=-5)
    with pytest.raises(NotFoundError):
        agg.add_line("no-such-stock", 1, total=10)
    assert len(agg.lines) == 1


def test_a4b_failed_add_line_leaves_bill_unchanged(store, categories, ids):
    """A4b: a bad measurement map rejects the whole line; nothing is appended."""
    agg = BillAggregate(store, categories)
    with pytest.raises(ValidationError):
        agg.add_line(ids["shirt"], 1, total=100, measurements={"length": [1, 2]})
    assert agg.lines == []
    assert agg.compute_totals().subtotal == Decimal("0.00")


def test_a5_negative_discount_or_advance_rejected(store, categories):
    with pytest.raises(ValidationError):
        BillAggregate(store, categories, discount=-1)
    agg = BillAggregate(store, categories)
    with pytest.raises(ValidationError):
        agg.set_advance(-0.01)


def test_a6_category_is_copied_not_linked(store, make_bill, ids):
    """A6: renaming the stock's category later does not change the line."""
    agg = make_bill()
    bill = agg.commit()
    StocksRepo(store).update(ids["shirt"], name="Shirt", code="PCS001", category="Kurta", date="2024-01-10")
    assert BillsRepo(store).require(bill.bill_id).items[0].category == "Shirt"


def test_a7_measurements_replace_and_validate(make_bill, categories):
    agg = make_bill()
    line = agg.lines[0]
    agg.set_measurements(line.item_id, {"length": 31, "custom": "loose"})
    assert line.measurements == {"length": 31, "custom": "loose"}
    with pytest.raises(ValidationError):
        agg.set_measurements(line.item_id, {"length": [1, 2]})
    with pytest.raises(ValidationError):
        agg.set_measurements(line.item_id, {" ": 1})
    assert agg.measurement_fields("Pants") == tuple(categories["Pants"])
    assert agg.measurement_fields("Unknown") == ()


# ---------------------------------------------------------------------------
# Suite B – validation
# ---------------------------------------------------------------------------

def test_b0_every_violation_is_reported(store, categories, ids):
    """B0: an empty header plus two bad lines yields one error listing all problems."""
    agg = BillAggregate(store, categories)
    agg.add_line(None, 1, total=100)  # no stock, no category, no measurements
    agg.add_line(ids["shirt"], 1, total=0, measurements={"length": 30})

    with pytest.raises(ValidationError) as e:
        agg.validate_for_commit()
    v = e.value.violations
    assert "Customer is required." in v
    assert "Bill number is required." in v
    assert "Bill date is required." in v
    assert "Delivery date is required." in v
    assert "Item 1: stock item is required." in v
    assert "Item 1: category is required." in v
    assert "Item 1: add measurements." in v
    assert "Item 2: total is required." in v
    assert len(v) == 8


def test_b1_empty_bill(store, categories, ids):
    agg = BillAggregate(
        store, categories, bill_number="1", customer_id=ids["alice"],
        date="2024-01-01", delivery_date="2024-01-05",
    )
    with pytest.raises(ValidationError) as e:
        agg.validate_for_commit()
    assert e.value.violations == ["Add at least one item."]


def test_b2_missing_measurements_block_commit(store, make_bill):
    agg = make_bill(measurements={})
    with pytest.raises(ValidationError) as e:
        agg.commit()
    assert e.value.violations == ["Item 1: add measurements."]
    assert store.list("bills") == []


def test_b3_discount_and_advance_limits(make_bill):
    with pytest.raises(ValidationError) as e:
        make_bill(total=100, discount=150).validate_for_commit()
    assert e.value.violations == ["Discount cannot exceed the bill total."]

    with pytest.raises(ValidationError) as e:
        make_bill(total=100, discount=10, advance=95).validate_for_commit()
    assert e.value.violations == ["Advance cannot exceed the grand total."]


def test_b4_unknown_customer_and_bad_dates(make_bill):
    agg = make_bill(customer_id="ghost", date="01/02/2024")
    with pytest.raises(ValidationError) as e:
        agg.validate_for_commit()
    assert e.value.violations == [
        "Selected customer does not exist.",
        "Bill date must be in YYYY-MM-DD format.",
    ]


# ---------------------------------------------------------------------------
# Suite C – commit and stock deductions
# ---------------------------------------------------------------------------

def test_c0_commit_persists_and_deducts(store, make_bill, ids):
    agg = make_bill(total=1000, quantity=2, discount=100, advance=200)
    agg.add_line(ids["pants"], 3, total=600, measurements={"waist": 32})
    bill = agg.commit()

    assert bill.bill_id
    assert (bill.total, bill.grand_total, bill.due) == (1600.0, 1500.0, 1300.0)
    assert bill.items[0].measurements == {"length": 30, "chest": 40, "waist": 34, "neck": "15.5"}

    ledger = StockLedger(store)
    assert ledger.on_hand(ids["shirt"]) == 48
    assert ledger.on_hand(ids["pants"]) == 37
    sale = list(ledger.reconstruct_ledger(ids["pants"]))[-1]
    assert (sale.kind, sale.delta, sale.bill_id, sale.date) == ("sale", -3, bill.bill_id, "2024-02-01")
    assert ledger.is_consistent(ids["shirt"]) and ledger.is_consistent(ids["pants"])

    stored = BillsRepo(store).require(bill.bill_id)
    assert stored.due == 1300.0
    assert stored.payments == []


def test_c1_commit_is_all_or_nothing(store, make_bill, ids):
    """C1: the second line cannot be covered, so neither line is deducted."""
    agg = make_bill(quantity=5)
    agg.add_line(ids["coat"], 3, total=900, measurements={"chest": 40})  # only 2 coats on hand

    with pytest.raises(InsufficientStockError) as e:
        agg.commit()
    assert e.value.stock_id == ids["coat"]

    ledger = StockLedger(store)
    assert ledger.on_hand(ids["shirt"]) == 50
    assert ledger.on_hand(ids["coat"]) == 2
    assert store.list("bills") == []
    assert store.list("stock-transactions") == []
    assert agg.committed is None


def test_c2_lines_on_same_stock_are_checked_together(store, make_bill, ids):
    """C2: two coat lines of 1 and 2 need 3 coats; only 2 exist."""
    agg = make_bill(stock="coat", quantity=1, measurements={"chest": 40})
    agg.add_line(ids["coat"], 2, total=500, measurements={"chest": 42})
    with pytest.raises(InsufficientStockError) as e:
        agg.commit()
    assert e.value.requested == 3
    assert StockLedger(store).on_hand(ids["coat"]) == 2


def test_c3_commit_rolls_back_on_sqlite(any_store, categories):
    """C3: the same guarantee holds on the SQLite backend."""
    from tailor_shop.database.repositories import CustomersRepo

    sid = StocksRepo(any_store).create(name="Coat", code="C", category="Coat/Shafari", quantity=1).stock_id
    cid = CustomersRepo(any_store).create("Zed", "1").customer_id
    agg = BillAggregate(
        any_store, categories, bill_number="S-1", customer_id=cid,
        date="2024-05-01", delivery_date="2024-05-09",
    )
    agg.add_line(sid, 1, total=100, measurements={"chest": 1})
    agg.add_line(sid, 1, total=100, measurements={"chest": 1})
    with pytest.raises(InsufficientStockError):
        agg.commit()
    assert any_store.list("bills") == []
    assert StockLedger(any_store).on_hand(sid) == 1

    agg.remove_line(agg.lines[1].item_id)
    bill = agg.commit()
    assert BillsRepo(any_store).require(bill.bill_id).due == 100.0
    assert StockLedger(any_store).on_hand(sid) == 0


def test_c4_committed_bill_is_frozen(make_bill, ids):
    agg = make_bill()
    agg.commit()
    with pytest.raises(BillCommittedError):
        agg.add_line(ids["pants"], 1, total=10)
    with pytest.raises(BillCommittedError):
        agg.remove_line(agg.lines[0].item_id)
    with pytest.raises(BillCommittedError):
        agg.set_discount(5)
    with pytest.raises(BillCommittedError):
        agg.commit()


def test_c5_from_bill_view_includes_payments(store, make_bill, payments):
    bill = make_bill(total=1000, discount=100, advance=200).commit()
    payments.add_payment(bill.bill_id, "2024-02-05", 300)
    view = BillAggregate.from_bill(store, BillsRepo(store).require(bill.bill_id))
    t = view.compute_totals()
    assert (t.paid, t.due) == (Decimal("300.00"), Decimal("400.00"))
    with pytest.raises(BillCommittedError):
        view.set_advance(0)


def test_c6_header_and_description_edits(store, categories, ids):
    agg = BillAggregate(store, categories)
    line = agg.add_line(ids["pants"], 1, total=200, measurements={"waist": 30}, description="  pleated ")
    assert line.description == "pleated"
    agg.set_description(line.item_id, "flat front")
    agg.set_header(bill_number=" 42 ", customer_id=ids["bob"], date="2024-04-01", delivery_date="2024-04-08")
    assert agg.bill_number == "42"

    bill = agg.commit()
    assert (bill.bill_number, bill.customer_id, bill.delivery_date) == ("42", ids["bob"], "2024-04-08")
    assert bill.items[0].description == "flat front"
    with pytest.raises(BillCommittedError):
        agg.set_header(bill_number="43")
