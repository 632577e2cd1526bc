"""Cell value normalization.

Raw cells arrive as whatever openpyxl produced: numbers, datetimes, strings
or None. ``normalize`` turns one of them into the kind a schema field
expects, degrading to the field default (and logging) instead of raising.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from performance_dashboard.utils.exceptions import MalformedCellWarning
from performance_dashboard.utils.logging import get_logger

logger = get_logger(__name__)

# Serial 25569 is 1970-01-01 in the 1900 date system. The system counts a
# nonexistent 1900-02-29 (serial 60), so serials up to 60 are off by one day
# and are rejected rather than converted.
SERIAL_UNIX_OFFSET = 25569
MIN_SERIAL = 61
UNIX_EPOCH = date(1970, 1, 1)

MONTH_LABEL_FORMAT = "%b-%y"


class CellKind(str, Enum):
    """Kind of value a schema field expects."""

    NUMBER = "number"
    PERCENTAGE = "percentage"
    DATE = "date"
    STRING = "string"
    MONTH = "month"


_KIND_DEFAULTS: dict[CellKind, Any] = {
    CellKind.NUMBER: 0,
    CellKind.PERCENTAGE: 0,
    CellKind.DATE: None,
    CellKind.STRING: "",
    CellKind.MONTH: "",
}

UNSET: Any = object()
"""Marker for "no explicit default"; the kind default applies."""


def is_blank(value: Any) -> bool:
    """True for absent cells and whitespace-only strings."""
    return value is None or (isinstance(value, str) and not value.strip())


def serial_to_date(serial: float) -> date:
    """Convert a spreadsheet serial day count to a calendar date.

    Any fractional (time of day) part is dropped.

    Raises:
        MalformedCellWarning: For serials before 1900-03-01 or non-finite input.
    """
    if not math.isfinite(serial) or serial < MIN_SERIAL:
        raise MalformedCellWarning(serial, CellKind.DATE.value)
    return UNIX_EPOCH + timedelta(days=math.floor(serial) - SERIAL_UNIX_OFFSET)


def parse_percentage(text: str) -> float:
    """Parse ``"12%"`` as ``0.12``; plain numeric text is returned as-is.

    Raises:
        MalformedCellWarning: If the text is not numeric.
    """
    stripped = text.strip()
    if stripped.endswith("%"):
        return _parse_float(stripped[:-1], CellKind.PERCENTAGE) / 100
    return _parse_float(stripped, CellKind.PERCENTAGE)


def normalize(
    value: Any,
    kind: CellKind,
    *,
    default: Any = UNSET,
    allow_null: bool = False,
    field: str | None = None,
) -> Any:
    """Normalize one raw cell value.

    Args:
        value: Raw cell content.
        kind: Expected kind.
        default: Value substituted for blank or malformed cells. Falls back
            to ``None`` when ``allow_null`` is set, otherwise to the kind's
            default (0 for numbers, "" for strings, None for dates).
        allow_null: Whether ``None`` ("not yet available") is a legitimate
            result, distinct from a confirmed zero.
        field: Field name, used only for diagnostics.

    Returns:
        A number, ``datetime.date``, string, or None.
    """
    if default is UNSET:
        default = None if allow_null else _KIND_DEFAULTS[kind]

    if is_blank(value):
        return default

    try:
        result = _COERCERS[kind](value)
    except MalformedCellWarning as e:
        logger.warning(
            "Malformed cell, using default",
            field=field or "-",
            kind=kind.value,
            raw_value=repr(value),
            error_code=e.error_code.value,
        )
        return default

    if isinstance(result, str) and not result:
        return default
    return result


def _parse_float(text: str, kind: CellKind) -> float:
    cleaned = text.strip().replace(",", "")
    try:
        number = float(cleaned)
    except ValueError:
        raise MalformedCellWarning(text, kind.value) from None
    if not math.isfinite(number):
        raise MalformedCellWarning(text, kind.value)
    return number


def _to_number(value: Any) -> int | float:
    if isinstance(value, bool) or isinstance(value, (date, datetime)):
        raise MalformedCellWarning(value, CellKind.NUMBER.value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise MalformedCellWarning(value, CellKind.NUMBER.value)
        return value
    text = str(value).strip()
    if text.endswith("%"):
        text = text[:-1]
    return _parse_float(text, CellKind.NUMBER)


def _to_percentage(value: Any) -> int | float:
    if isinstance(value, str):
        return parse_percentage(value)
    return _to_number(value)


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        raise MalformedCellWarning(value, CellKind.DATE.value)
    if isinstance(value, (int, float)):
        return serial_to_date(value)
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise MalformedCellWarning(value, CellKind.DATE.value) from None


def _to_string(value: Any) -> str:
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def format_month_label(value: date) -> str:
    """``date(2025, 1, 1)`` -> ``"Jan-25"``."""
    return value.strftime(MONTH_LABEL_FORMAT)


def _to_month(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    return format_month_label(_to_date(value))


_COERCERS = {
    CellKind.NUMBER: _to_number,
    CellKind.PERCENTAGE: _to_percentage,
    CellKind.DATE: _to_date,
    CellKind.STRING: _to_string,
    CellKind.MONTH: _to_month,
}
