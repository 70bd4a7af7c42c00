"""Logging, metrics and tracing for the search engine."""

from collection_search.observability.logging import JsonFormatter, configure_logging, current_trace_ids
from collection_search.observability.metrics import (
    CACHE_LOOKUPS,
    CACHED_INDEXES,
    INDEX_BUILD_LATENCY,
    INDEX_BUILDS,
    SCAN_FALLBACKS,
    SEARCH_LATENCY,
    SLOW_SEARCHES,
    MetricBridge,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from collection_search.observability.setup import setup_observability
from collection_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "CACHED_INDEXES",
    "CACHE_LOOKUPS",
    "INDEX_BUILDS",
    "INDEX_BUILD_LATENCY",
    "SCAN_FALLBACKS",
    "SEARCH_LATENCY",
    "SLOW_SEARCHES",
    "JsonFormatter",
    "MetricBridge",
    "configure_logging",
    "create_span",
    "current_trace_ids",
    "get_metrics",
    "get_metrics_content_type",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "setup_observability",
    "track_latency",
]
