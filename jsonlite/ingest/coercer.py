"""
Value coercion from decoded JSON to storage values.

Every value bound into an insert passes through ``coerce``. Numbers are
kept exact: integer literals stay Python ints, fractional literals keep
their source text until they are narrowed here, and anything beyond the
safe-integer boundary is stored as its decimal text instead of being
rounded through a double.
"""

import json
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, Tuple

# Largest integer a double represents exactly (2 ** 53 - 1)
MAX_SAFE_INTEGER = 9007199254740991


class JsonNumber(str):
    """Exact source text of a fractional or exponent JSON number literal."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"JsonNumber({str.__repr__(self)})"


class StorageKind(str, Enum):
    """Storage-side variant a decoded value is narrowed into."""
    NULL = "null"
    BOOL = "bool"
    STRING = "string"
    INT64 = "int64"
    FLOAT64 = "float64"
    TEXT = "text"


def _is_safe(magnitude) -> bool:
    return abs(magnitude) <= MAX_SAFE_INTEGER


def coerce(value: Any) -> Tuple[StorageKind, Any]:
    """
    Narrow a decoded JSON value into a storage kind and value.

    Args:
        value: Value produced by the decoder (or an equivalent Python value)

    Returns:
        Tuple of (storage kind, value to bind)

    Raises:
        TypeError: If the value is not a JSON-compatible type
    """
    if value is None:
        return StorageKind.NULL, None
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return StorageKind.BOOL, value
    if isinstance(value, JsonNumber):
        if _is_safe(Decimal(value)):
            return StorageKind.FLOAT64, float(value)
        return StorageKind.TEXT, str.__str__(value)
    if isinstance(value, str):
        return StorageKind.STRING, value
    if isinstance(value, int):
        if _is_safe(value):
            return StorageKind.INT64, value
        return StorageKind.TEXT, str(value)
    if isinstance(value, float):
        if value != value or not _is_safe(value):
            return StorageKind.TEXT, repr(value)
        return StorageKind.FLOAT64, value
    if isinstance(value, Decimal):
        if value.is_finite() and _is_safe(value):
            return StorageKind.FLOAT64, float(value)
        return StorageKind.TEXT, str(value)
    if isinstance(value, (Mapping, list, tuple)):
        return StorageKind.TEXT, canonical_json(value)
    raise TypeError(f"Cannot coerce value of type {type(value).__name__}")


def coerce_value(value: Any) -> Any:
    """Storage value for a decoded JSON value (see ``coerce``)."""
    return coerce(value)[1]


def canonical_json(value: Any) -> str:
    """
    Render a decoded structure as canonical JSON text.

    Compact separators, object keys sorted, non-ASCII characters kept,
    number literals emitted exactly as they appeared in the input.
    """
    if isinstance(value, JsonNumber):
        return str.__str__(value)
    if isinstance(value, Mapping):
        members = (
            f"{json.dumps(str(key), ensure_ascii=False)}:{canonical_json(item)}"
            for key, item in sorted(value.items())
        )
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(canonical_json(item) for item in value) + "]"
    if isinstance(value, Decimal):
        return str(value)
    return json.dumps(value, ensure_ascii=False)
