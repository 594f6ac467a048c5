"""
Request payload validation helpers shared by the resource services.

Each helper raises ValidationError with a message suitable for the client.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from flask import request

from clubhouse.errors import ValidationError


def get_json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def parse_dt(val: Optional[str]) -> Optional[datetime]:
    """
    Safely parse an ISO-8601 or datetime-local string to a datetime object.

    Args:
        val (str): The date string to parse.

    Returns:
        datetime: The parsed datetime, or None if invalid.
    """
    if not val or not isinstance(val, str):
        return None
    try:
        # Handles 'YYYY-MM-DDTHH:MM' and '...Z' or '...+00:00'
        if val.endswith("Z"):
            val = val[:-1] + "+00:00"
        return datetime.fromisoformat(val)
    except (ValueError, TypeError):
        return None


def require_fields(data: Dict[str, Any], fields: Iterable[str], message: str) -> None:
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(message)


def require_datetime(data: Dict[str, Any], field: str) -> datetime:
    parsed = parse_dt(data.get(field))
    if parsed is None:
        raise ValidationError(f"Invalid {field} format. Use ISO-8601.")
    return parsed


def optional_datetime(data: Dict[str, Any], field: str) -> Optional[datetime]:
    if data.get(field) in (None, ""):
        return None
    return require_datetime(data, field)


def non_negative_number(value: Any, field: str, default: Optional[Decimal] = None) -> Decimal:
    """
    Parse a money-like amount (fee, price).

    Booleans are rejected even though Python treats them as ints.
    """
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"{field} is required.")
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number.")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number.")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field} must be a non-negative number.")
    return amount


def non_negative_int(value: Any, field: str, default: int = 0) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer.")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be an integer.")
    if isinstance(value, float) and value != number:
        raise ValidationError(f"{field} must be an integer.")
    if number < 0:
        raise ValidationError(f"{field} must be a non-negative integer.")
    return number


def optional_positive_int(value: Any, field: str) -> Optional[int]:
    if value is None or value == "":
        return None
    number = non_negative_int(value, field)
    if number == 0:
        raise ValidationError(f"{field} must be a positive integer.")
    return number


def optional_bool(value: Any, field: str, default: bool = True) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be true or false.")
    return value


def one_of(value: Any, allowed: Iterable[str], field: str) -> str:
    allowed = list(allowed)
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(allowed)}")
    return value
