"""Query evaluation over a ``DataIndex``.

Every predicate is turned into a set of matching row indices. Index lookups are
tried first; predicates an index cannot answer are checked row by row, but only
over the rows that survived the predicates before them. Results are always
reported in row order, whichever strategy produced them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging
from typing import Any, Final

from collection_search.index import DataIndex, FieldIndex
from collection_search.observability.metrics import SCAN_FALLBACKS
from collection_search.operators import (
    RANGE_KEYS,
    active_operators,
    contains_substring,
    is_operator_object,
    matches_direct,
    matches_operators,
)
from collection_search.paths import flatten_query, get_nested_value
from collection_search.values import is_finite_number, stringify, values_equal


logger = logging.getLogger(__name__)


class _NotIndexed:
    def __repr__(self) -> str:
        return "NOT_INDEXED"


# returned by resolve_field_via_index when only a scan can answer
NOT_INDEXED: Final = _NotIndexed()


def _range_bounds(ops: Mapping[str, Any]) -> dict[str, float] | None:
    bounds = {key[1:]: ops[key] for key in RANGE_KEYS.intersection(ops)}
    if not bounds or not all(is_finite_number(bound) for bound in bounds.values()):
        return None
    return bounds


def _range_rows(field_index: FieldIndex, ops: Mapping[str, Any]) -> set[int] | None:
    """Rows inside the range part of ``ops``, or None if the index can't tell."""
    if not field_index.is_numeric:
        return None
    bounds = _range_bounds(ops)
    if bounds is None:
        return None
    entries = field_index.range(**bounds)
    if "$eq" in ops:
        return {entry.idx for entry in entries if values_equal(entry.value, ops["$eq"])}
    return {entry.idx for entry in entries}


def resolve_field_via_index(field_index: FieldIndex, query_value: Any) -> set[int] | _NotIndexed:
    """Answer one field predicate from ``field_index`` alone.

    Handles direct values, range-plus-``$eq`` on numeric fields, pure ``$eq``
    and pure ``$in``. Any other operator mix yields ``NOT_INDEXED``.
    """
    if not is_operator_object(query_value):
        if isinstance(query_value, str):
            return field_index.substring(query_value.lower())
        if query_value is None:
            # None also matches rows where the path is missing; the index has no such rows
            return NOT_INDEXED
        return field_index.lookup(query_value)

    ops = active_operators(query_value)
    keys = set(ops)

    if keys & RANGE_KEYS and keys <= RANGE_KEYS | {"$eq"}:
        rows = _range_rows(field_index, ops)
        return NOT_INDEXED if rows is None else rows

    if keys == {"$eq"}:
        if ops["$eq"] is None:
            return NOT_INDEXED
        return field_index.lookup(ops["$eq"])

    if keys == {"$in"}:
        return field_index.substring(stringify(ops["$in"]).lower())

    return NOT_INDEXED


def scan_field(data: Sequence[Any], path: str, query_value: Any, candidates: Iterable[int]) -> set[int]:
    """Check ``query_value`` against each candidate row."""
    operator_query = is_operator_object(query_value)
    matches: set[int] = set()
    for row in candidates:
        item = data[row]
        if not isinstance(item, Mapping):
            continue
        value = get_nested_value(item, path)
        if operator_query:
            matched = matches_operators(value, query_value)
        else:
            matched = matches_direct(value, query_value)
        if matched:
            matches.add(row)
    return matches


def evaluate_query_object(data: Sequence[Any], query: Mapping[str, Any], data_index: DataIndex) -> set[int]:
    """Rows matching every field predicate of ``query`` (AND across fields)."""
    flat = flatten_query(query)
    if not flat:
        return set(range(len(data)))

    result: set[int] | None = None
    for path, query_value in flat.items():
        field_index = data_index.fields.get(path)
        matches = NOT_INDEXED if field_index is None else resolve_field_via_index(field_index, query_value)

        if matches is NOT_INDEXED:
            reason = "no_index" if field_index is None else "operators"
            SCAN_FALLBACKS.labels(reason=reason).inc()
            logger.debug("Scanning %s (%s)", path, reason)

            candidates: Iterable[int] = result if result is not None else range(len(data))
            if field_index is not None and is_operator_object(query_value):
                # resolve the range part through the sorted index, scan-filter the rest
                range_rows = _range_rows(field_index, active_operators(query_value))
                if range_rows is not None:
                    candidates = range_rows if result is None else range_rows & result
            matches = scan_field(data, path, query_value, candidates)

        result = matches if result is None else result & matches
        if not result:
            break

    return result or set()


def evaluate_primitive_query(data: Sequence[Any], query: str, data_index: DataIndex) -> set[int]:
    """Substring search over a dataset of primitives."""
    needle = query.lower()
    if data_index.primitive_inverted is not None:
        return data_index.primitive_substring(needle)
    return {row for row, item in enumerate(data) if needle in stringify(item).lower()}


def evaluate_text_query(
    data: Sequence[Any],
    query: str,
    data_index: DataIndex,
    keys: Sequence[str] | None = None,
) -> set[int]:
    """Substring search across several field paths (OR across paths).

    ``keys`` defaults to every indexed path. Paths without an index are scanned.
    """
    needle = query.lower()
    search_keys = list(keys) if keys else list(data_index.fields)

    matches: set[int] = set()
    for key in search_keys:
        field_index = data_index.fields.get(key)
        if field_index is not None:
            matches |= field_index.substring(needle)
            continue
        SCAN_FALLBACKS.labels(reason="no_index").inc()
        for row, item in enumerate(data):
            if isinstance(item, Mapping) and contains_substring(get_nested_value(item, key), needle):
                matches.add(row)
    return matches


def evaluate_string_query(data: Sequence[Any], query: str, data_index: DataIndex) -> set[int]:
    if data_index.is_primitive:
        return evaluate_primitive_query(data, query, data_index)
    return evaluate_text_query(data, query, data_index)


def evaluate_any_of(data: Sequence[Any], queries: Iterable[Mapping[str, Any]], data_index: DataIndex) -> set[int]:
    """Union of the rows matched by each query object (OR)."""
    rows: set[int] = set()
    for query in queries:
        rows |= evaluate_query_object(data, query, data_index)
    return rows


def evaluate_all_of(
    data: Sequence[Any],
    queries: Iterable[Mapping[str, Any]],
    data_index: DataIndex,
    initial: set[int] | None = None,
) -> set[int]:
    """Intersection of the rows matched by each query object (AND).

    ``initial`` seeds the intersection (for an OR group followed by AND
    terms). With neither ``initial`` nor queries, every row matches.
    """
    result = initial
    for query in queries:
        if result is not None and not result:
            break
        matches = evaluate_query_object(data, query, data_index)
        result = matches if result is None else result & matches
    return set(range(len(data))) if result is None else result


def rows_to_items(data: Sequence[Any], rows: Iterable[int]) -> list[Any]:
    """Map row indices back to items in original order."""
    return [data[row] for row in sorted(rows)]
