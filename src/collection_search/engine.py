"""Public search API.

``SearchEngine`` owns an ``IndexCache`` and evaluates ``SearchOptions`` against
a dataset. The module-level ``search``, ``lazy_search`` and
``reset_search_index`` helpers run on a shared default engine and keep the
positional calling convention::

    search(products, {"category": "clothes"}, {"price": {"$gte": 200}}, "Product")

where a trailing string after at least one query argument is the cache key.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from functools import lru_cache, partial
import logging
import time
from typing import Any

from collection_search.cache import IndexCache, get_default_cache
from collection_search.config import Settings, get_settings
from collection_search.index import DataIndex
from collection_search.models import SearchOptions, SearchResult, noop_reset
from collection_search.observability.metrics import SEARCH_LATENCY, SLOW_SEARCHES, track_latency
from collection_search.observability.tracing import create_span
from collection_search.planner import (
    evaluate_all_of,
    evaluate_any_of,
    evaluate_primitive_query,
    evaluate_string_query,
    evaluate_text_query,
    rows_to_items,
)


logger = logging.getLogger(__name__)


def is_dataset(data: Any) -> bool:
    """Lists, tuples and other sequences count; strings and bytes do not."""
    return isinstance(data, Sequence) and not isinstance(data, (str, bytes, bytearray))


def parse_search_args(args: Sequence[Any]) -> SearchOptions:
    """Turn positional ``search`` arguments into ``SearchOptions``.

    - with two or more arguments, a trailing string is the cache key
    - a leading string is a text query; anything after it is ignored
    - a leading list of query objects is an OR group; query objects after it
      are ANDed with the group
    - otherwise every query object argument is ANDed

    Arguments that are not query objects are skipped. If arguments were given
    but none of them is usable, nothing matches.
    """
    query_args = list(args)
    cache_key = None
    if len(query_args) >= 2 and isinstance(query_args[-1], str):
        cache_key = query_args.pop()

    if not query_args:
        return SearchOptions(cache_key=cache_key)

    first = query_args[0]
    if isinstance(first, str):
        return SearchOptions(text=first, cache_key=cache_key)

    if isinstance(first, (list, tuple)):
        return SearchOptions(
            any_of=[query for query in first if isinstance(query, Mapping)],
            all_of=[query for query in query_args[1:] if isinstance(query, Mapping)],
            cache_key=cache_key,
        )

    all_of = [query for query in query_args if isinstance(query, Mapping)]
    if not all_of:
        return SearchOptions(any_of=[], cache_key=cache_key)
    return SearchOptions(all_of=all_of, cache_key=cache_key)


class SearchEngine:
    """Index-accelerated search over in-memory datasets.

    Args:
        cache: Index cache to use. Each engine gets a private cache by default,
            which keeps test suites and independent callers isolated.
        settings: Engine settings; the process-wide settings by default.
    """

    def __init__(self, cache: IndexCache | None = None, settings: Settings | None = None) -> None:
        self.cache = cache if cache is not None else IndexCache()
        self.settings = settings or get_settings()

    def index(self, data: Sequence[Any], cache_key: str | None = None, *, sample_size: int | None = None) -> DataIndex:
        """Return the (possibly cached) index for ``data``."""
        return self.cache.get_or_build(data, cache_key or None, sample_size=sample_size or self.settings.sample_size)

    def reset(self, cache_key: str | None = None) -> None:
        self.cache.reset(cache_key)

    def run(self, data: Sequence[Any], options: SearchOptions) -> SearchResult:
        """Evaluate ``options`` against ``data``.

        Non-sequence or empty data yields an empty result with a no-op reset.
        """
        if not is_dataset(data) or not data:
            return SearchResult()

        cache_key = options.cache_key or None
        start = time.perf_counter()
        attributes = {"search.rows": len(data), "search.cached": cache_key is not None}
        with (
            create_span("collection_search.search", attributes=attributes),
            track_latency(SEARCH_LATENCY, operation="search"),
        ):
            data_index = self.index(data, cache_key, sample_size=options.sample_size)
            rows = self._evaluate(data, options, data_index)
            results = list(data) if rows is None else rows_to_items(data, rows)

        self.observe_slow("search", start, len(data))
        return SearchResult(results=results, reset=self._reset_callback(cache_key))

    def search(self, data: Sequence[Any], *args: Any) -> SearchResult:
        """Positional form of ``run``; see ``parse_search_args``."""
        if not is_dataset(data) or not data:
            return SearchResult()
        return self.run(data, parse_search_args(args))

    def lazy_search(
        self,
        data: Sequence[Any],
        keys: Sequence[str] | None = None,
        model_key: str | None = None,
    ) -> LazySearch:
        return LazySearch(self, data, keys=keys, model_key=model_key)

    def _evaluate(self, data: Sequence[Any], options: SearchOptions, data_index: DataIndex) -> set[int] | None:
        if options.text is not None:
            return evaluate_string_query(data, options.text, data_index)
        if options.any_of is not None:
            union = evaluate_any_of(data, options.any_of, data_index)
            return evaluate_all_of(data, options.all_of, data_index, initial=union)
        if options.all_of:
            return evaluate_all_of(data, options.all_of, data_index)
        return None

    def _reset_callback(self, cache_key: str | None) -> Callable[[], None]:
        if cache_key is None:
            return noop_reset
        return partial(self.cache.reset, cache_key)

    def observe_slow(self, operation: str, start: float, rows: int) -> None:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if elapsed_ms > self.settings.slow_search_ms:
            SLOW_SEARCHES.labels(operation=operation).inc()
            logger.warning(
                "Slow %s took %.1fms over %d rows",
                operation,
                elapsed_ms,
                rows,
                extra={"operation": operation, "elapsed_ms": round(elapsed_ms, 3)},
            )


class LazySearch:
    """A dataset indexed once up front, searched many times by text.

    ``search(query)`` unions substring matches across ``keys`` (every indexed
    path when omitted). ``reset()`` drops the cached index; the next search
    rebuilds it.
    """

    def __init__(
        self,
        engine: SearchEngine,
        data: Sequence[Any],
        keys: Sequence[str] | None = None,
        model_key: str | None = None,
    ) -> None:
        self._engine = engine
        self._data = data
        self.keys = list(keys) if keys else None
        self.model_key = model_key or None
        self.loading = True
        self._index: DataIndex | None = None
        if is_dataset(data) and data:
            self._index = engine.index(data, self.model_key)
        self.loading = False

    def search(self, query: str) -> list[Any]:
        data = self._data
        if not is_dataset(data) or not data:
            return []
        if not query or not isinstance(query, str):
            return list(data)

        start = time.perf_counter()
        with (
            create_span("collection_search.lazy_search", attributes={"search.rows": len(data)}),
            track_latency(SEARCH_LATENCY, operation="lazy_search"),
        ):
            if self._index is None:
                self._index = self._engine.index(data, self.model_key)
            if self._index.is_primitive:
                rows = evaluate_primitive_query(data, query, self._index)
            else:
                rows = evaluate_text_query(data, query, self._index, self.keys)
            results = rows_to_items(data, rows)

        self._engine.observe_slow("lazy_search", start, len(data))
        return results

    def reset(self) -> None:
        self._index = None
        if self.model_key is not None:
            self._engine.reset(self.model_key)


@lru_cache(maxsize=1)
def get_default_engine() -> SearchEngine:
    """Engine bound to the process-wide default cache."""
    return SearchEngine(cache=get_default_cache())


def search(data: Sequence[Any], *args: Any) -> SearchResult:
    """Search ``data`` with the default engine.

    Examples:
        >>> search(["apple", "banana", "cherry"], "an").results
        ['banana']
        >>> search(users, [{"name": "John"}, {"age": 25}], "User").results  # doctest: +SKIP
    """
    return get_default_engine().search(data, *args)


def lazy_search(data: Sequence[Any], keys: Sequence[str] | None = None, model_key: str | None = None) -> LazySearch:
    """Index ``data`` now and return a reusable text-search handle."""
    return get_default_engine().lazy_search(data, keys, model_key)


def reset_search_index(model_key: str | None = None) -> None:
    """Drop one cached index from the default cache, or all of them."""
    get_default_cache().reset(model_key)
