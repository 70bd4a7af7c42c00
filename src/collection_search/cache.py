"""Keyed cache of built indexes.

Callers own an ``IndexCache`` and pass it to a ``SearchEngine``; the module
level ``search``/``reset_search_index`` helpers share one default instance.
Entries never expire on their own: an entry is replaced when the dataset passed
under its key is a different object or has a different length, and dropped
only by ``reset``.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging
import threading
from typing import Any

from collection_search.index import DEFAULT_SAMPLE_SIZE, DataIndex, build_index
from collection_search.observability.metrics import CACHE_LOOKUPS, CACHED_INDEXES


logger = logging.getLogger(__name__)


class IndexCache:
    """Thread-safe map of cache key -> ``DataIndex``."""

    def __init__(self) -> None:
        self._entries: dict[str, DataIndex] = {}
        self._lock = threading.RLock()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def get(self, key: str, data: Sequence[Any]) -> DataIndex | None:
        """Return the cached index for ``key`` if it is still valid for ``data``."""
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                return None
            if cached.is_valid_for(data):
                return cached
            return None

    def put(self, key: str, index: DataIndex) -> None:
        with self._lock:
            if key not in self._entries:
                CACHED_INDEXES.labels().inc()
            self._entries[key] = index

    def get_or_build(
        self,
        data: Sequence[Any],
        key: str | None = None,
        *,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
    ) -> DataIndex:
        """Return a valid index for ``data``, building and storing it if needed.

        Without a key the index is built and returned but never stored.
        """
        if key is None:
            return build_index(data, sample_size)

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None and cached.is_valid_for(data):
                CACHE_LOOKUPS.labels(outcome="hit").inc()
                logger.debug("Index cache hit for %s", key)
                return cached

            outcome = "stale" if cached is not None else "miss"
            CACHE_LOOKUPS.labels(outcome=outcome).inc()
            logger.debug("Index cache %s for %s; rebuilding", outcome, key)

            index = build_index(data, sample_size)
            self.put(key, index)
            return index

    def reset(self, key: str | None = None) -> None:
        """Drop the entry for ``key``, or every entry when no key is given."""
        with self._lock:
            if key is None:
                dropped = len(self._entries)
                self._entries.clear()
            else:
                dropped = 1 if self._entries.pop(key, None) is not None else 0
        if dropped:
            CACHED_INDEXES.labels().dec(dropped)
            logger.debug("Dropped %d cached index(es)", dropped, extra={"cache_key": key})


_default_cache = IndexCache()


def get_default_cache() -> IndexCache:
    """Return the process-wide cache used by the module-level helpers."""
    return _default_cache
