"""In-memory, index-accelerated search over lists of records or primitives.

Modules:
- paths: dot-path resolution and query flattening
- operators: ``$eq``/``$gt``/``$in``/... predicate evaluation
- index: hash, inverted and sorted-numeric field indexes
- cache: keyed index cache with identity/length invalidation
- planner: index-first query evaluation with scan fallback
- engine: ``search``, ``lazy_search`` and ``reset_search_index``
"""

from collection_search.cache import IndexCache, get_default_cache
from collection_search.config import Settings, get_settings
from collection_search.engine import (
    LazySearch,
    SearchEngine,
    get_default_engine,
    lazy_search,
    parse_search_args,
    reset_search_index,
    search,
)
from collection_search.index import DataIndex, FieldIndex, SortedEntry, build_index
from collection_search.models import SearchOptions, SearchResult
from collection_search.operators import OPERATOR_KEYS, SearchOperators


__all__ = [
    "OPERATOR_KEYS",
    "DataIndex",
    "FieldIndex",
    "IndexCache",
    "LazySearch",
    "SearchEngine",
    "SearchOperators",
    "SearchOptions",
    "SearchResult",
    "Settings",
    "SortedEntry",
    "build_index",
    "get_default_cache",
    "get_default_engine",
    "get_settings",
    "lazy_search",
    "parse_search_args",
    "reset_search_index",
    "search",
]
