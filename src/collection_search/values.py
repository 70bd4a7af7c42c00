"""Value normalization shared by the index builder and the operator evaluator.

Both sides must agree on what "the same value" means, otherwise an
index-accelerated lookup and a linear scan would return different rows for the
same predicate. Everything that compares or stringifies record values goes
through this module.

Hash keys are JSON rather than the ``str()`` form of a value: ``25`` and
``"25"`` get different keys, so a numeric query never matches a stored numeric
string (and vice versa). Substring search still goes through ``stringify``.
"""

from __future__ import annotations

from collections.abc import Mapping
import math
from typing import Any

import orjson


def is_finite_number(value: Any) -> bool:
    """True for ints and finite floats. Bools are not numbers here."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def stringify(value: Any) -> str:
    """Render a scalar the way a user typing into a search box would see it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


_MAX_JSON_INT = 2**63


def _normalize(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) >= _MAX_JSON_INT:
        # orjson only encodes 64-bit integers
        return {"$bigint": str(value)}
    if isinstance(value, int):
        return value
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _normalize(item) for key, item in value.items()}
    return value


def canonical_key(value: Any) -> str:
    """Return the hash-index key for ``value``.

    JSON encoding keeps ``25`` and ``"25"`` apart while folding ``25.0`` onto
    ``25`` and tuples onto lists.
    """
    return orjson.dumps(_normalize(value), option=orjson.OPT_SORT_KEYS, default=str).decode("utf-8")


def is_hashable_value(value: Any) -> bool:
    """Values that get a hash-index entry. None and NaN equal nothing."""
    if value is None:
        return False
    return not (isinstance(value, float) and math.isnan(value))


def values_equal(left: Any, right: Any) -> bool:
    """Exact equality with the same semantics as a hash-index lookup."""
    if left is None or right is None:
        return left is None and right is None
    if not is_hashable_value(left) or not is_hashable_value(right):
        return False
    return canonical_key(left) == canonical_key(right)
