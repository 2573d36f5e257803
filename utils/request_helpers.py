"""Request helpers shared by the API blueprints."""

import math
from typing import Any, Iterable, Optional, Type, TypeVar

from flask import request

from error_handler import NotFoundError, ValidationError

T = TypeVar("T")

# amounts are stored in signed 64-bit integer columns
MAX_AMOUNT = 2**63 - 1


def parse_id(raw: Any, label: str = "identifiant") -> int:
    """Turn a path/body identifier into a positive int or raise ValidationError.

    Runs before any lookup, a malformed id never reaches the database.
    """
    if isinstance(raw, bool):
        raise ValidationError(f"{label} invalide", field="id")
    if isinstance(raw, int):
        value = raw
    else:
        text = str(raw or "").strip()
        if not text.isdigit():
            raise ValidationError(f"{label} invalide", field="id")
        value = int(text)
    if value <= 0 or value > 2**63 - 1:
        raise ValidationError(f"{label} invalide", field="id")
    return value


def try_parse_id(raw: Any) -> Optional[int]:
    """parse_id that returns None instead of raising."""
    try:
        return parse_id(raw)
    except ValidationError:
        return None


def get_json_object() -> dict:
    """Request body as a dict, 400 for missing/invalid JSON or non-objects."""
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Corps JSON invalide")
    if not isinstance(data, dict):
        raise ValidationError("Le corps de la requête doit être un objet JSON")
    return data


def get_or_404(model: Type[T], raw_id: Any, message: str) -> T:
    """Validate the id, load the row or raise NotFoundError."""
    from database import db

    obj = db.session.get(model, parse_id(raw_id))
    if obj is None:
        raise NotFoundError(message)
    return obj


def check_amounts(data: dict, fields: Iterable[str]) -> None:
    """Reject infinite, NaN or out-of-range numeric fields with ValidationError.

    Other non-numeric values are left to the lenient coercion of the models.
    """
    for field in fields:
        value = data.get(field)
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, int):
            in_range = abs(value) <= MAX_AMOUNT
        else:
            try:
                number = float(value)
            except (TypeError, ValueError):
                continue
            except OverflowError:
                in_range = False
            else:
                in_range = math.isfinite(number) and abs(number) <= MAX_AMOUNT
        if not in_range:
            raise ValidationError(f"{field} hors limites", field=field)
