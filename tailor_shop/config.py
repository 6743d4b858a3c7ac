import json
import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME
from .errors import NotFoundError, ValidationError

BASE_DIR = Path(os.environ.get("TAILOR_SHOP_HOME", Path.cwd())).resolve()
DATA_PATH = Path(os.environ.get("TAILOR_SHOP_DATA_DIR", BASE_DIR / DATA_DIR))
DB_PATH = DATA_PATH / DB_FILE_NAME

LOG_LEVEL = os.environ.get("TAILOR_SHOP_LOG_LEVEL", "INFO").upper()

# category -> ordered measurement fields shown on the measurement form
DEFAULT_CATEGORY_FIELDS: dict[str, tuple[str, ...]] = {
    "Coat/Shafari": ("length", "chest", "waist", "hip", "shoulder", "sleeve", "neck", "cross_back", "cross_front"),
    "Shirt": ("length", "chest", "waist", "hip", "shoulder", "sleeve", "neck", "k.f"),
    "Pants": ("length", "waist", "hip", "thigh", "knee", "bottom"),
    "Fabric": ("length", "width"),
    "Accessories": ("size",),
}


def default_category_fields() -> dict[str, tuple[str, ...]]:
    """Fresh copy of the built-in category map; callers own the result."""
    return dict(DEFAULT_CATEGORY_FIELDS)


def load_category_fields(path: str | Path) -> dict[str, tuple[str, ...]]:
    """
    Read a JSON object {"Category": ["field", ...], ...}.

    Raises ValueError with a user-facing message when the document does not
    have that shape.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("Category file must contain a JSON object.")

    mapping: dict[str, tuple[str, ...]] = {}
    for category, fields in raw.items():
        name = str(category).strip()
        if not name:
            raise ValueError("Category names cannot be empty.")
        if not isinstance(fields, list) or not all(isinstance(f, str) and f.strip() for f in fields):
            raise ValueError(f"Fields for category '{name}' must be a list of non-empty strings.")
        mapping[name] = tuple(f.strip() for f in fields)
    return mapping


# ---- category management (add/remove on a caller-owned map) ----

def _find_category(mapping: dict[str, tuple[str, ...]], category: str) -> str:
    wanted = (category or "").strip().lower()
    for name in mapping:
        if name.lower() == wanted:
            return name
    raise NotFoundError("categories", category)


def add_category(mapping: dict[str, tuple[str, ...]], category: str) -> dict[str, tuple[str, ...]]:
    """Add an empty category. Names are unique ignoring case."""
    name = (category or "").strip()
    if not name:
        raise ValidationError("Category name is required.")
    if any(existing.lower() == name.lower() for existing in mapping):
        raise ValidationError("Category already exists.")
    mapping[name] = ()
    return mapping


def add_field(mapping: dict[str, tuple[str, ...]], category: str, field: str) -> dict[str, tuple[str, ...]]:
    """Append a measurement field; unique within its category, ignoring case."""
    name = _find_category(mapping, category)
    f = (field or "").strip()
    if not f:
        raise ValidationError("Measurement name is required.")
    if any(existing.lower() == f.lower() for existing in mapping[name]):
        raise ValidationError("Measurement already exists.")
    mapping[name] = mapping[name] + (f,)
    return mapping


def remove_field(mapping: dict[str, tuple[str, ...]], category: str, field: str) -> dict[str, tuple[str, ...]]:
    name = _find_category(mapping, category)
    fields = mapping[name]
    if field not in fields:
        raise NotFoundError(f"fields of {name}", field)
    mapping[name] = tuple(f for f in fields if f != field)
    return mapping
