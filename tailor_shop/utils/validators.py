# utils/validators.py
import re
from datetime import date
from decimal import Decimal

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def non_empty(text) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


def is_email(text) -> bool:
    """Basic shape check: something@something.tld, no whitespace."""
    return bool(text) and _EMAIL_RE.match(str(text).strip()) is not None


def is_number(x) -> bool:
    """Real numbers only; bools and numeric strings are not accepted."""
    return isinstance(x, (int, float, Decimal)) and not isinstance(x, bool)


def is_positive_int(x) -> bool:
    """True iff x is an int (not bool) and >= 1."""
    return isinstance(x, int) and not isinstance(x, bool) and x >= 1


def parse_iso_date(value) -> date | None:
    """
    Parse 'YYYY-MM-DD' (or a date instance). Returns None when the value is
    empty or malformed.
    """
    if isinstance(value, date):
        return value
    if not non_empty(value):
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None
