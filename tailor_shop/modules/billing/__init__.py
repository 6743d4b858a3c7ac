"""
Billing package exports.

- BillAggregate:           compose, validate and commit a bill
- MeasurementCarryForward: copy sources for a line's measurements
"""

from .aggregate import BillAggregate, BillTotals
from .carry_forward import (
    CandidateSequence,
    MeasurementCandidate,
    MeasurementCarryForward,
    find_candidates,
)

__all__ = [
    "BillAggregate",
    "BillTotals",
    "CandidateSequence",
    "MeasurementCandidate",
    "MeasurementCarryForward",
    "find_candidates",
]
