"""Translation of Filter/Order lists into DocumentQuery refinements.

Filter values arrive as strings and are coerced according to their declared
ValueType. A value that cannot be coerced drops its filter silently; the query
then runs as if that filter had not been given.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any

from shared.clients.docstore.models.Query import DocumentQuery
from shared.models.query import Filter, Order, ValueType

DATE_FORMAT = "%Y-%m-%d"

_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_DECIMAL_PATTERN = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")
_HEX_PATTERN = re.compile(r"[+-]?0[xX]([0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+")
_SPECIAL_PATTERN = re.compile(r"[+-]?(inf|infinity|nan)", re.IGNORECASE)
_TRUE_LITERALS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_LITERALS = {"0", "f", "F", "FALSE", "false", "False"}


class CoercionError(ValueError):
    """Raised when a filter value does not match its declared type."""


def parse_bool(value: str) -> bool:
    if value in _TRUE_LITERALS:
        return True
    if value in _FALSE_LITERALS:
        return False
    raise CoercionError(f"Invalid boolean literal: {value!r}")


def parse_float(value: str) -> float:
    """Parse a 64-bit float written as ASCII decimal, hex ("0x1p3"), inf or nan.

    Whitespace, digit separators and non-ASCII digits are rejected, and so is
    finite text that overflows to infinity.
    """
    if _DECIMAL_PATTERN.fullmatch(value):
        result = float(value)
    elif _HEX_PATTERN.fullmatch(value):
        try:
            result = float.fromhex(value)
        except OverflowError as e:
            raise CoercionError(f"Number literal out of range: {value!r}") from e
    elif _SPECIAL_PATTERN.fullmatch(value):
        return float(value)
    else:
        raise CoercionError(f"Invalid number literal: {value!r}")
    if math.isinf(result):
        raise CoercionError(f"Number literal out of range: {value!r}")
    return result


def parse_date(value: str) -> datetime:
    """Parse a YYYY-MM-DD calendar date into midnight UTC."""
    if not _DATE_PATTERN.fullmatch(value):
        raise CoercionError(f"Invalid date literal: {value!r}")
    try:
        return datetime.strptime(value, DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise CoercionError(f"Invalid date literal: {value!r}") from e


def coerce_filter_value(f: Filter) -> Any:
    """Coerce the string value of a filter according to its type tag.

    Raises:
        CoercionError: If the value does not parse as the declared type.
    """
    if f.type == ValueType.BOOLEAN:
        return parse_bool(f.value)
    if f.type == ValueType.NUMBER:
        return parse_float(f.value)
    if f.type == ValueType.TIMESTAMP:
        return parse_date(f.value)
    return f.value


def apply_filters(query: DocumentQuery, filters: list[Filter] | None) -> DocumentQuery:
    """Refine a query with every filter whose value coerces; the rest are skipped."""
    for f in filters or []:
        try:
            value = coerce_filter_value(f)
        except CoercionError:
            continue
        query = query.where(f.field, f.operator, value)
    return query


def apply_orders(query: DocumentQuery, orders: list[Order] | None) -> DocumentQuery:
    for o in orders or []:
        query = query.order_by(o.field, descending=o.descending)
    return query
