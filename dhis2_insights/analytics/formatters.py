from __future__ import annotations

from datetime import date, datetime
from typing import Any

MISSING = "-"

NUMBER_TYPES = {
    "NUMBER",
    "INTEGER",
    "INTEGER_POSITIVE",
    "INTEGER_NEGATIVE",
    "INTEGER_ZERO_OR_POSITIVE",
}


def format_value(value: Any, value_type: str | None = None) -> str:
    if value is None or value == "":
        return MISSING

    kind = (value_type or "").upper()
    if kind in NUMBER_TYPES:
        return format_number(value)
    if kind == "PERCENTAGE":
        return format_percentage(value)
    if kind == "UNIT_INTERVAL":
        number = _to_float(value)
        if number is None:
            return str(value)
        return f"{format_decimal(number * 100)}%"
    if kind == "DATE":
        return format_date(value)
    if kind == "DATETIME":
        return format_datetime(value)
    if kind == "BOOLEAN":
        return "Yes" if _truthy(value) else "No"
    if kind == "TRUE_ONLY":
        return "Yes" if _truthy(value) else ""
    return str(value)


def format_number(value: Any) -> str:
    number = _to_float(value)
    if number is None:
        return str(value)
    text = f"{number:,.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def format_decimal(value: Any, decimals: int = 2) -> str:
    number = _to_float(value)
    if number is None:
        return str(value)
    return f"{number:,.{decimals}f}"


def format_percentage(value: Any) -> str:
    number = _to_float(value)
    if number is None:
        return str(value)
    return f"{number:,.1f}%"


def format_date(value: Any) -> str:
    if not value:
        return MISSING
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    try:
        return datetime.fromisoformat(str(value)).strftime("%Y-%m-%d")
    except ValueError:
        return str(value)


def format_datetime(value: Any) -> str:
    if not value:
        return MISSING
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    try:
        return datetime.fromisoformat(str(value)).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return str(value)


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(str(value).replace(",", "")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None


def _truthy(value: Any) -> bool:
    return value is True or str(value).lower() == "true"
