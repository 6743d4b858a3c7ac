from __future__ import annotations
from typing import Optional

# ---------- Human labels ----------
LABELS = {
    "unpaid":  "Unpaid",
    "partial": "Partially Paid",
    "paid":    "Paid",
}


def normalize(state: Optional[str]) -> Optional[str]:
    """Lowercase & strip; return None if empty."""
    if state is None:
        return None
    s = str(state).strip().lower()
    return s or None


def label(state: str) -> str:
    """Human label ('Partially Paid'). If unknown, returns the given string title-cased."""
    s = normalize(state)
    if s in LABELS:
        return LABELS[s]  # type: ignore[index]
    return (state or "").strip().title()
