"""
Measurement carry-forward: offer earlier measurement sets as copy sources
for a line being composed.

Candidates come in two groups, in this order:
  1. 'current'  : other lines of the bill being composed with the same
                  category and at least one measurement.
  2. 'previous' : for each earlier bill of the same customer (newest first),
                  the first line with the same category and measurements.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from ...database.repositories.bills_repo import Bill, BillItem, BillsRepo
from ...database.store import RecordStore

SOURCE_CURRENT = "current"
SOURCE_PREVIOUS = "previous"


@dataclass(frozen=True)
class MeasurementCandidate:
    source: str
    measurements: dict = field(default_factory=dict)
    line_id: str | None = None
    bill_id: str | None = None
    bill_number: str | None = None
    bill_date: str | None = None

    @property
    def label(self) -> str:
        if self.source == SOURCE_PREVIOUS:
            return f"Bill #{self.bill_number} ({self.bill_date})"
        return "This bill"


class CandidateSequence:
    """
    Iterable of candidates, recomputed from the inputs on every iteration.
    An empty sequence is falsy.
    """

    def __init__(
        self,
        current_lines: Iterable[BillItem],
        category: str,
        exclude_line_id: Optional[str],
        prior_bills: Iterable[Bill],
    ):
        self._lines = list(current_lines)
        self._category = category
        self._exclude = exclude_line_id
        self._bills = list(prior_bills)

    def __iter__(self) -> Iterator[MeasurementCandidate]:
        for it in self._lines:
            if it.item_id == self._exclude:
                continue
            if it.category == self._category and it.measurements:
                yield MeasurementCandidate(
                    source=SOURCE_CURRENT,
                    measurements=dict(it.measurements),
                    line_id=it.item_id,
                )
        for bill in self._bills:
            match = next(
                (it for it in bill.items if it.category == self._category and it.measurements),
                None,
            )
            if match is not None:
                yield MeasurementCandidate(
                    source=SOURCE_PREVIOUS,
                    measurements=dict(match.measurements),
                    line_id=match.item_id,
                    bill_id=bill.bill_id,
                    bill_number=bill.bill_number,
                    bill_date=bill.date,
                )

    def __bool__(self) -> bool:
        return next(iter(self), None) is not None


def find_candidates(
    current_lines: Iterable[BillItem],
    category: str,
    exclude_line_id: Optional[str],
    customer_prior_bills: Iterable[Bill],
) -> CandidateSequence:
    return CandidateSequence(current_lines, category, exclude_line_id, customer_prior_bills)


class MeasurementCarryForward:
    def __init__(self, store: RecordStore):
        self.bills = BillsRepo(store)

    find_candidates = staticmethod(find_candidates)

    def for_line(self, aggregate, line_id: str) -> CandidateSequence:
        """
        Candidates for one line of an in-progress BillAggregate, using that
        line's category and the customer's earlier bills.
        """
        line = aggregate.get_line(line_id)
        prior: list[Bill] = []
        if aggregate.customer_id:
            exclude = aggregate.committed.bill_id if aggregate.committed else None
            prior = self.bills.list_by_customer(aggregate.customer_id, exclude_bill_id=exclude)
        return find_candidates(aggregate.lines, line.category or "", line_id, prior)

    @staticmethod
    def apply(aggregate, line_id: str, candidate: MeasurementCandidate) -> BillItem:
        """Copy a candidate's measurements onto the line (a copy, not a shared dict)."""
        return aggregate.set_measurements(line_id, dict(candidate.measurements))
