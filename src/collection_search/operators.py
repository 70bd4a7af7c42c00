"""Query operators and the pointwise predicate evaluator.

A query value is either a direct value (``"jane"``, ``25``, ``["a", "b"]``) or
an operator object: a mapping holding at least one reserved ``$`` key. Plain
mappings stay usable as query literals, so operator objects are recognised
structurally rather than through a wrapper type.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
import operator
import re
from typing import Any, TypedDict

from collection_search.values import is_finite_number, stringify, values_equal


SearchOperators = TypedDict(
    "SearchOperators",
    {
        "$eq": Any,
        "$ne": Any,
        "$gt": float,
        "$gte": float,
        "$lt": float,
        "$lte": float,
        "$in": str,
        "$nin": str,
        "$regex": "str | re.Pattern[str]",
        "$exists": bool,
    },
    total=False,
)

OPERATOR_KEYS = frozenset({"$eq", "$ne", "$gt", "$gte", "$lt", "$lte", "$in", "$nin", "$regex", "$exists"})
RANGE_KEYS = frozenset({"$gt", "$gte", "$lt", "$lte"})

# $eq/$ne compare against None meaningfully; the rest treat None as "not given"
_NULLABLE_KEYS = frozenset({"$eq", "$ne"})

_RANGE_COMPARATORS = {
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}


def is_operator_object(value: Any) -> bool:
    """True when ``value`` is a mapping with at least one reserved operator key."""
    if not isinstance(value, Mapping):
        return False
    return any(key in OPERATOR_KEYS for key in value)


def active_operators(ops: Mapping[str, Any]) -> dict[str, Any]:
    """Return only the operators that take part in evaluation.

    Unknown keys are dropped, as are operators other than ``$eq``/``$ne``
    whose value is None.
    """
    return {
        key: value
        for key, value in ops.items()
        if key in OPERATOR_KEYS and (value is not None or key in _NULLABLE_KEYS)
    }


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> re.Pattern[str]:
    # re.error propagates: a malformed pattern is a caller bug
    return re.compile(pattern, re.IGNORECASE)


def compile_regex(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    """Compile string patterns case-insensitively; pass compiled patterns through."""
    if isinstance(pattern, re.Pattern):
        return pattern
    return _compile_pattern(str(pattern))


def contains_substring(value: Any, needle: str) -> bool:
    """Case-insensitive containment for strings and lists of strings.

    ``needle`` must already be lowercased.
    """
    if isinstance(value, str):
        return needle in value.lower()
    if isinstance(value, (list, tuple)):
        return any(isinstance(item, str) and needle in item.lower() for item in value)
    return False


def matches_direct(value: Any, expected: Any) -> bool:
    """Evaluate a direct (non-operator) query value against one record value.

    Strings are substring searches; everything else is exact equality.
    """
    if isinstance(expected, str):
        return contains_substring(value, expected.lower())
    return values_equal(value, expected)


def matches_operators(value: Any, ops: Mapping[str, Any]) -> bool:
    """Return True if ``value`` satisfies every operator in ``ops``.

    Range operators only ever match finite numbers, and only against numeric
    bounds. ``$regex`` never matches a missing value.
    """
    ops = active_operators(ops)

    if "$exists" in ops and bool(ops["$exists"]) != (value is not None):
        return False

    if "$eq" in ops and not values_equal(value, ops["$eq"]):
        return False

    if "$ne" in ops and values_equal(value, ops["$ne"]):
        return False

    for key in RANGE_KEYS.intersection(ops):
        bound = ops[key]
        if not is_finite_number(value) or not is_finite_number(bound):
            return False
        if not _RANGE_COMPARATORS[key](value, bound):
            return False

    if "$in" in ops and not contains_substring(value, stringify(ops["$in"]).lower()):
        return False

    if "$nin" in ops and contains_substring(value, stringify(ops["$nin"]).lower()):
        return False

    if "$regex" in ops:
        pattern = compile_regex(ops["$regex"])
        if value is None or pattern.search(stringify(value)) is None:
            return False

    return True
