"""Column type inference shared by the classifiers."""

from __future__ import annotations

import re
from typing import Any, Iterable

STRING = "string"
BOOLEAN = "boolean"
BIGINT = "bigint"
DOUBLE = "double"
DATE = "date"
TIMESTAMP = "timestamp"
ARRAY = "array"
STRUCT = "struct"

_BIGINT_MIN = -(2 ** 63)
_BIGINT_MAX = 2 ** 63 - 1

_INT_RE = re.compile(r"^[+-]?\d+$")
_DOUBLE_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:?\d{2})?$")


def infer_value_type(value: str) -> str:
    """Narrowest type a single text value fits."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return BOOLEAN
    if _INT_RE.match(value):
        return BIGINT if _BIGINT_MIN <= int(value) <= _BIGINT_MAX else DOUBLE
    if _DOUBLE_RE.match(value):
        return DOUBLE
    if _DATE_RE.match(value):
        return DATE
    if _TIMESTAMP_RE.match(value):
        return TIMESTAMP
    return STRING


def json_value_type(value: Any) -> str | None:
    """Type of a decoded JSON value, None for null."""
    if value is None:
        return None
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, int):
        return BIGINT
    if isinstance(value, float):
        return DOUBLE
    if isinstance(value, list):
        return ARRAY
    if isinstance(value, dict):
        return STRUCT
    return STRING


def common_type(types: Iterable[str | None]) -> str:
    """Common type of a column: bigint and double widen to double, other mixes to string."""
    seen = {t for t in types if t is not None}
    if not seen:
        return STRING
    if len(seen) == 1:
        return seen.pop()
    if seen == {BIGINT, DOUBLE}:
        return DOUBLE
    if seen == {DATE, TIMESTAMP}:
        return TIMESTAMP
    return STRING
