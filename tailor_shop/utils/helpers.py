# utils/helpers.py
from datetime import date, datetime, timezone
import logging
import uuid
from typing import Union, Optional

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def now_iso() -> str:
    """UTC timestamp in ISO-8601, used for createdAt/updatedAt."""
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return uuid.uuid4().hex


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    On parse failure returns `sentinel` when given, else str(v).
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"
