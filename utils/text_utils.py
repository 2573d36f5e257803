"""Value coercion and formatting helpers."""

from __future__ import annotations

from datetime import datetime
from typing import Any


def iso(value: datetime | None) -> str | None:
    """ISO 8601 in UTC with a trailing Z, None stays None."""
    if value is None:
        return None
    return value.isoformat() + "Z"


def to_int(value: Any, default: int = 0) -> int:
    """Lenient int: "12", 12.7, "12.7" → 12; anything else → default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return default


def clean_str(value: Any, max_length: int | None = None) -> str | None:
    """Strip a string value; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if max_length is not None:
        text = text[:max_length]
    return text


def format_date_fr(value: datetime | None) -> str:
    """dd/mm/YYYY as shown on receipts."""
    if value is None:
        return "N/A"
    return value.strftime("%d/%m/%Y")
