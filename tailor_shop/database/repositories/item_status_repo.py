from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...constants import COL_ITEM_STATUS, COL_TAILOR_COUNTERS, ITEM_IN_PROGRESS, ITEM_STATUSES
from ...errors import ValidationError
from ...utils.helpers import today_str
from ...utils.validators import non_empty, parse_iso_date
from ..store import RecordStore

LABELS = {
    "in_progress": "In Progress",
    "ready": "Ready",
    "delivered": "Delivered",
}


def normalize(status: Optional[str]) -> Optional[str]:
    """Lowercase & strip; return None if empty."""
    if status is None:
        return None
    s = str(status).strip().lower()
    return s or None


def ensure_valid(status: str) -> str:
    s = normalize(status)
    if s not in ITEM_STATUSES:
        raise ValidationError("status must be one of: in_progress, ready, delivered")
    return s


@dataclass
class ItemStatusEntry:
    entry_id: str | None
    date: str
    item_id: str
    tailor_counter_id: str | None
    status: str

    @property
    def status_label(self) -> str:
        return LABELS.get(self.status, self.status)

    @classmethod
    def from_record(cls, rec: dict) -> "ItemStatusEntry":
        return cls(
            entry_id=rec.get("id"),
            date=rec.get("date", ""),
            item_id=rec.get("itemId", ""),
            tailor_counter_id=rec.get("tailorCounterId") or None,
            status=rec.get("status", ITEM_IN_PROGRESS),
        )

    def to_record(self) -> dict:
        rec = {
            "date": self.date,
            "itemId": self.item_id,
            "tailorCounterId": self.tailor_counter_id,
            "status": self.status,
        }
        if self.entry_id:
            rec["id"] = self.entry_id
        return rec


class ItemStatusRepo:
    """
    Work tracking for stitched items: which counter has an item and whether it
    is in progress, ready or delivered.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def _check_counter(self, counter_id: str | None) -> None:
        if counter_id and self.store.get(COL_TAILOR_COUNTERS, counter_id) is None:
            raise ValidationError("Tailor counter does not exist.")

    def list_entries(self, date: Optional[str] = None) -> list[ItemStatusEntry]:
        entries = [ItemStatusEntry.from_record(r) for r in self.store.list(COL_ITEM_STATUS)]
        if date:
            entries = [e for e in entries if e.date == date]
        return entries

    def available_dates(self) -> list[str]:
        """Distinct entry dates, newest first."""
        return sorted({e.date for e in self.list_entries() if e.date}, reverse=True)

    def create(
        self,
        *,
        item_id: str,
        date: Optional[str] = None,
        tailor_counter_id: Optional[str] = None,
        status: str = ITEM_IN_PROGRESS,
    ) -> ItemStatusEntry:
        problems = []
        if not non_empty(item_id):
            problems.append("Item is required.")
        if date is not None and parse_iso_date(date) is None:
            problems.append("Date must be in YYYY-MM-DD format.")
        if problems:
            raise ValidationError(problems)
        st = ensure_valid(status)
        self._check_counter(tailor_counter_id)
        entry = ItemStatusEntry(None, str(parse_iso_date(date) or today_str()), item_id, tailor_counter_id, st)
        return ItemStatusEntry.from_record(self.store.append(COL_ITEM_STATUS, entry.to_record()))

    def update_status(self, entry_id: str, status: str) -> ItemStatusEntry:
        st = ensure_valid(status)
        with self.store.transaction():
            rec = self.store.require(COL_ITEM_STATUS, entry_id)
            rec["status"] = st
            return ItemStatusEntry.from_record(self.store.put(COL_ITEM_STATUS, entry_id, rec))

    def assign_tailor(self, entry_id: str, tailor_counter_id: str | None) -> ItemStatusEntry:
        self._check_counter(tailor_counter_id)
        with self.store.transaction():
            rec = self.store.require(COL_ITEM_STATUS, entry_id)
            rec["tailorCounterId"] = tailor_counter_id or None
            return ItemStatusEntry.from_record(self.store.put(COL_ITEM_STATUS, entry_id, rec))
