"""
Common utility functions and helpers.

Rows arrive from the spreadsheet-like frontend with headers whose casing and
surrounding whitespace vary ("Classe", " classe", "CLASSE"), so every field
access goes through ``find_field_key`` / ``get_value``.
"""
from typing import Any, Mapping, Optional
from datetime import datetime, timezone
import re


def _normalize_header(name: Any) -> str:
    return str(name).strip().lower()


def find_field_key(row: Any, target: str) -> Optional[str]:
    """
    Locate the actual key of ``target`` inside a loosely-shaped row.

    Keys are compared after ``strip().lower()``.  When several keys match,
    the first one in the row's insertion order wins.

    Args:
        row: Row mapping (anything else yields None)
        target: Canonical field name, e.g. "Matière"

    Returns:
        The row's own key, or None when absent
    """
    if not isinstance(row, Mapping):
        return None
    wanted = _normalize_header(target)
    for key in row.keys():
        if _normalize_header(key) == wanted:
            return key
    return None


def get_value(row: Any, target: str, default: Any = "") -> Any:
    """
    Return the value stored under ``target`` (case-insensitive).

    Falls back to ``default`` when the field is absent or holds None / "".
    """
    key = find_field_key(row, target)
    if key is None:
        return default
    value = row[key]
    if value is None or value == "":
        return default
    return value


def is_blank(value: Any) -> bool:
    """True for None or a value whose string form is only whitespace."""
    return value is None or str(value).strip() == ""


def safe_filename_part(text: str) -> str:
    """
    Make a string usable inside a download filename.

    Every character outside [A-Za-z0-9] becomes "_" and runs of "_" collapse.
    """
    return re.sub(r"_+", "_", re.sub(r"[^a-z0-9]", "_", text or "", flags=re.IGNORECASE))


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored ``updatedAt`` value.

    Accepts datetimes, epoch milliseconds and ISO-8601 strings (with an
    optional trailing Z).  Returns None when the value is not a date.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None
