"""Per-field index structures for in-memory datasets.

A dataset is either a list of primitives or a list of (possibly nested)
mappings. Object datasets get one ``FieldIndex`` per discovered dot-path:

- hash: canonical value key -> row indices (exact match)
- inverted: lowercased string token -> row indices (substring match)
- sorted: ``SortedEntry(value, idx)`` ordered by value (numeric range)

Primitive datasets get a single inverted map of lowercased stringified items.
Indexes are write-once: a changed dataset gets a brand new ``DataIndex``.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
from typing import Any, NamedTuple

from collection_search.observability.metrics import INDEX_BUILD_LATENCY, INDEX_BUILDS, track_latency
from collection_search.observability.tracing import create_span
from collection_search.paths import collect_paths, get_nested_value
from collection_search.values import canonical_key, is_finite_number, is_hashable_value, stringify


logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 100


class SortedEntry(NamedTuple):
    value: float
    idx: int


@dataclass
class FieldIndex:
    """Indexes for a single dot-path."""

    hash: dict[str, set[int]] = field(default_factory=lambda: defaultdict(set))
    inverted: dict[str, set[int]] = field(default_factory=lambda: defaultdict(set))
    sorted: list[SortedEntry] = field(default_factory=list)

    @property
    def is_numeric(self) -> bool:
        return bool(self.sorted)

    def range(
        self,
        *,
        gt: float | None = None,
        gte: float | None = None,
        lt: float | None = None,
        lte: float | None = None,
    ) -> list[SortedEntry]:
        """Return the sorted entries within the given bounds.

        When both bounds of a side are given the tighter one applies.
        """
        lo, hi = 0, len(self.sorted)
        if gte is not None:
            lo = max(lo, bisect_left(self.sorted, gte, key=_entry_value))
        if gt is not None:
            lo = max(lo, bisect_right(self.sorted, gt, key=_entry_value))
        if lte is not None:
            hi = min(hi, bisect_right(self.sorted, lte, key=_entry_value))
        if lt is not None:
            hi = min(hi, bisect_left(self.sorted, lt, key=_entry_value))
        return self.sorted[lo:hi]

    def substring(self, needle: str) -> set[int]:
        """Rows whose token contains ``needle`` (already lowercased)."""
        return _scan_inverted(self.inverted, needle)

    def lookup(self, value: Any) -> set[int]:
        """Rows whose value equals ``value`` exactly."""
        if not is_hashable_value(value):
            return set()
        return set(self.hash.get(canonical_key(value), ()))


def _entry_value(entry: SortedEntry) -> float:
    return entry.value


def _scan_inverted(inverted: Mapping[str, Any], needle: str) -> set[int]:
    matches: set[int] = set()
    for token, rows in inverted.items():
        if needle in token:
            matches.update(rows)
    return matches


@dataclass
class DataIndex:
    """Everything built for one dataset.

    Exactly one of ``fields`` (object datasets) or ``primitive_inverted``
    (primitive datasets) is populated.
    """

    data_ref: Sequence[Any] | None
    data_length: int
    fields: dict[str, FieldIndex] = field(default_factory=dict)
    primitive_inverted: dict[str, list[int]] | None = None
    sample_size: int = DEFAULT_SAMPLE_SIZE

    @property
    def is_primitive(self) -> bool:
        return self.primitive_inverted is not None

    def is_valid_for(self, data: Sequence[Any]) -> bool:
        """Identity (and length) check against the dataset passed to a search."""
        if self.data_ref is not None:
            return self.data_ref is data and self.data_length == len(data)
        return self.data_length == len(data)

    def primitive_substring(self, needle: str) -> set[int]:
        return _scan_inverted(self.primitive_inverted or {}, needle)


def is_primitive_dataset(data: Sequence[Any]) -> bool:
    return not data or not isinstance(data[0], Mapping)


def index_value(field_index: FieldIndex, value: Any, row: int) -> bool:
    """Feed one record value into ``field_index``.

    Returns True when the value went into the numeric sorted list. The caller
    sorts the list once every row has been processed.
    """
    if value is None:
        return False

    if is_hashable_value(value):
        field_index.hash[canonical_key(value)].add(row)

    if isinstance(value, str):
        field_index.inverted[value.lower()].add(row)
    elif isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, str):
                field_index.inverted[item.lower()].add(row)

    if is_finite_number(value):
        field_index.sorted.append(SortedEntry(value, row))
        return True
    return False


def discover_paths(data: Sequence[Any], sample_size: int = DEFAULT_SAMPLE_SIZE) -> list[str]:
    """Union the dot-paths of the first ``sample_size`` records.

    Fields that only appear after the sample have no index; queries on them
    fall back to a linear scan.
    """
    paths: dict[str, None] = {}
    for item in data[:sample_size]:
        if isinstance(item, Mapping):
            paths.update(dict.fromkeys(collect_paths(item)))
    return list(paths)


def _build_primitive(data: Sequence[Any], index: DataIndex) -> None:
    inverted: dict[str, list[int]] = defaultdict(list)
    for row, item in enumerate(data):
        inverted[stringify(item).lower()].append(row)
    index.primitive_inverted = dict(inverted)


def _build_fields(data: Sequence[Any], index: DataIndex) -> None:
    for path in discover_paths(data, index.sample_size):
        field_index = FieldIndex()
        for row, item in enumerate(data):
            if isinstance(item, Mapping):
                index_value(field_index, get_nested_value(item, path), row)
        if field_index.sorted:
            field_index.sorted.sort(key=_entry_value)
        # freeze the defaultdicts so lookups can't grow them
        field_index.hash = dict(field_index.hash)
        field_index.inverted = dict(field_index.inverted)
        index.fields[path] = field_index


def build_index(data: Sequence[Any], sample_size: int = DEFAULT_SAMPLE_SIZE) -> DataIndex:
    """Build a fresh ``DataIndex`` for ``data``. No caching happens here."""
    kind = "primitive" if is_primitive_dataset(data) else "object"
    index = DataIndex(data_ref=data, data_length=len(data), sample_size=sample_size)

    with (
        create_span("collection_search.index.build", attributes={"index.kind": kind, "index.rows": len(data)}),
        track_latency(INDEX_BUILD_LATENCY, kind=kind),
    ):
        if kind == "primitive":
            _build_primitive(data, index)
        else:
            _build_fields(data, index)

    INDEX_BUILDS.labels(kind=kind).inc()
    logger.info(
        "Built %s index over %d rows (%d fields)",
        kind,
        len(data),
        len(index.fields),
        extra={"index_kind": kind, "rows": len(data)},
    )
    return index
