"""
Preprocessing utilities for document normalisation.
Resilient field access, numeric coercion, date parsing and category cleanup.
"""

import math
from datetime import date, datetime, timezone
from typing import Any, List, Optional, Tuple


def get_path(document: Any, *keys: str, default: Any = None) -> Any:
    """
    Walk nested dictionaries, returning ``default`` as soon as a level is missing.

    Args:
        document: Parsed JSON object
        keys: Successive keys to follow

    Returns:
        The value found, or default when any level is absent or not a dict
    """
    current = document
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def as_list(value: Any) -> List:
    """Return value if it is a list (or tuple), else an empty list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a JSON scalar to a finite float.

    Numeric strings ("810") are accepted. Booleans, NaN, infinities, integers too
    large for a float and anything unparsable return None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if not isinstance(value, (int, float, str)):
        return None

    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        # Integers beyond float range behave like infinities
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_float(value: Any, default: float = 0.0) -> float:
    number = to_number(value)
    return default if number is None else number


def to_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a transaction date into a naive UTC datetime.

    Accepts datetime/date objects, "YYYY-MM-DD" strings and ISO-8601
    timestamps (a trailing "Z" is allowed). Unparsable values return None so
    callers can exclude them from interval math.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                parsed = datetime.strptime(text[:10], "%Y-%m-%d")
            except ValueError:
                return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def lower_categories(value: Any) -> Tuple[str, ...]:
    """Lowercase a PLAID category list, skipping non-string entries."""
    return tuple(c.lower() for c in as_list(value) if isinstance(c, str))


def get_plaid_items(plaid: Any) -> List:
    """
    Locate the item list of a PLAID document.

    ``report.items`` (asset report format) wins whenever present; otherwise
    the top-level ``items`` list is used.
    """
    report_items = get_path(plaid, "report", "items")
    if report_items is not None:
        return as_list(report_items)
    return as_list(get_path(plaid, "items"))


def resolve_as_of(as_of: Any = None) -> datetime:
    """
    Reference date for recency calculations.

    Defaults to midnight UTC today so repeated calls on the same day agree.
    An explicit value is parsed like a transaction date.
    """
    if as_of is None:
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        return now.replace(hour=0, minute=0, second=0, microsecond=0)

    parsed = parse_date(as_of)
    if parsed is None:
        raise ValueError(f"Invalid reference date: {as_of!r}")
    return parsed
