"""
excel_import/validators/coercion.py

String-to-type coercion rules for decoded cells.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

# Accepted after ISO-8601 parsing fails.
TIMESTAMP_FORMATS: tuple[str, ...] = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
)

TRUE_VALUES = frozenset({"true", "1", "yes"})
FALSE_VALUES = frozenset({"false", "0", "no"})

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


class CoercionError(ValueError):
    """
    Raised when a cell string cannot be converted to the slot type.
    """


def coerce_str(raw: str) -> str:
    return raw


def coerce_int(raw: str) -> int:
    text = raw.strip()
    if not _INTEGER_PATTERN.fullmatch(text):
        raise CoercionError(f"{raw!r} is not a decimal integer")
    return int(text)


def coerce_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise CoercionError(f"{raw!r} is not one of true/false, 1/0, yes/no")


def coerce_decimal(raw: str) -> Decimal:
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, ValueError) as exc:
        raise CoercionError(f"{raw!r} is not a decimal number") from exc
    if not value.is_finite():
        raise CoercionError(f"{raw!r} is not a finite decimal number")
    return value


def coerce_float(raw: str) -> float:
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise CoercionError(f"{raw!r} is not a number") from exc


def coerce_datetime(raw: str) -> datetime:
    text = raw.strip()
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        pass

    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    raise CoercionError(f"{raw!r} is not an ISO-8601 date/time")


def coerce_date(raw: str) -> date:
    text = raw.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    # Date cells come out of the workbook as full datetimes.
    return coerce_datetime(text).date()


def coerce_time(raw: str) -> time:
    text = raw.strip()
    try:
        return time.fromisoformat(text)
    except ValueError as exc:
        raise CoercionError(f"{raw!r} is not an ISO-8601 time") from exc


COERCERS: dict[type, Callable[[str], Any]] = {
    str: coerce_str,
    int: coerce_int,
    bool: coerce_bool,
    Decimal: coerce_decimal,
    float: coerce_float,
    datetime: coerce_datetime,
    date: coerce_date,
    time: coerce_time,
}


def coerce_value(raw: str, target_type: type) -> Any:
    """
    Convert ``raw`` to ``target_type``.

    Raises:
        CoercionError: the text does not parse as ``target_type``.
    """

    try:
        coercer = COERCERS[target_type]
    except KeyError as exc:
        raise CoercionError(f"no coercion rule for {target_type.__name__}") from exc
    return coercer(raw)


def format_value(value: Any) -> str:
    """
    Render a coerced value back to the string form handed to field validators.
    """

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)
