from __future__ import annotations

from dataclasses import dataclass

from ...constants import COL_ITEM_STATUS, COL_TAILOR_COUNTERS
from ...errors import NotFoundError, ValidationError
from ...utils.validators import non_empty
from ..store import RecordStore


@dataclass
class TailorCounter:
    counter_id: str | None
    name: str
    phone: str
    address: str

    @classmethod
    def from_record(cls, rec: dict) -> "TailorCounter":
        return cls(
            counter_id=rec.get("id"),
            name=rec.get("name", ""),
            phone=rec.get("phone", ""),
            address=rec.get("address", ""),
        )

    def to_record(self) -> dict:
        rec = {"name": self.name, "phone": self.phone, "address": self.address}
        if self.counter_id:
            rec["id"] = self.counter_id
        return rec


class TailorCountersRepo:
    """Outside tailors/counters that stitched items are handed to."""

    def __init__(self, store: RecordStore):
        self.store = store

    @staticmethod
    def _check(name, phone) -> None:
        problems = []
        if not non_empty(name):
            problems.append("Name cannot be empty.")
        if not non_empty(phone):
            problems.append("Phone cannot be empty.")
        if problems:
            raise ValidationError(problems)

    def list_counters(self) -> list[TailorCounter]:
        return [TailorCounter.from_record(r) for r in self.store.list(COL_TAILOR_COUNTERS)]

    def get(self, counter_id: str) -> TailorCounter | None:
        rec = self.store.get(COL_TAILOR_COUNTERS, counter_id)
        return TailorCounter.from_record(rec) if rec else None

    def create(self, name: str, phone: str, address: str = "") -> TailorCounter:
        self._check(name, phone)
        tc = TailorCounter(None, name.strip(), phone.strip(), (address or "").strip())
        return TailorCounter.from_record(self.store.append(COL_TAILOR_COUNTERS, tc.to_record()))

    def update(self, counter_id: str, name: str, phone: str, address: str = "") -> TailorCounter:
        self._check(name, phone)
        with self.store.transaction():
            rec = self.store.require(COL_TAILOR_COUNTERS, counter_id)
            tc = TailorCounter.from_record(rec)
            tc.name, tc.phone, tc.address = name.strip(), phone.strip(), (address or "").strip()
            merged = {**rec, **tc.to_record()}
            return TailorCounter.from_record(self.store.put(COL_TAILOR_COUNTERS, counter_id, merged))

    def delete(self, counter_id: str) -> None:
        """Remove the counter and unassign it from any work-status entries."""
        with self.store.transaction():
            if not self.store.remove(COL_TAILOR_COUNTERS, counter_id):
                raise NotFoundError(COL_TAILOR_COUNTERS, counter_id)
            for entry in self.store.list(COL_ITEM_STATUS):
                if entry.get("tailorCounterId") == counter_id:
                    entry["tailorCounterId"] = None
                    self.store.put(COL_ITEM_STATUS, entry["id"], entry)
