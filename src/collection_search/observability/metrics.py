"""Prometheus metrics for the search engine, mirrored to OpenTelemetry instruments."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


_meter_holder: dict[str, Any] = {"meter": None, "provider": None}


def init_metrics(
    service_name: str = "collection-search",
    resource_attributes: dict[str, str] | None = None,
    metric_readers: list[MetricReader] | None = None,
) -> MeterProvider:
    """Initialize the OpenTelemetry meter provider once per process."""
    provider = _meter_holder.get("provider")
    if isinstance(provider, MeterProvider):
        return provider

    attributes = {"service.name": service_name}
    if resource_attributes:
        attributes.update(resource_attributes)
    provider = MeterProvider(resource=Resource.create(attributes), metric_readers=metric_readers or [])
    otel_metrics.set_meter_provider(provider)
    _meter_holder["provider"] = provider
    _meter_holder["meter"] = provider.get_meter(__name__)
    return provider


def _get_meter():
    meter = _meter_holder.get("meter")
    if meter is None:
        init_metrics()
        meter = _meter_holder.get("meter")
    return meter


def _label_key(labels: dict[str, str]) -> tuple[tuple[str, str], ...]:
    return tuple(sorted(labels.items()))


class _BoundMetric:
    def __init__(self, bridge: MetricBridge, labels: dict[str, str]) -> None:
        self._bridge = bridge
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._bridge.inc(self._labels, amount)

    def dec(self, amount: float = 1.0) -> None:
        self._bridge.inc(self._labels, -amount)

    def observe(self, value: float) -> None:
        self._bridge.observe(self._labels, value)

    def set(self, value: float) -> None:
        self._bridge.set(self._labels, value)


class MetricBridge:
    """Record to a Prometheus metric and a lazily created OTel instrument."""

    def __init__(
        self,
        prom_metric: Counter | Histogram | Gauge,
        *,
        otel_name: str,
        otel_description: str,
        otel_kind: str,
    ) -> None:
        self._prom_metric = prom_metric
        self._otel_name = otel_name
        self._otel_description = otel_description
        self._otel_kind = otel_kind
        self._otel_instrument = None
        self._last_values: dict[tuple[tuple[str, str], ...], float] = {}

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def _ensure_otel_instrument(self):
        if self._otel_instrument is not None:
            return self._otel_instrument
        meter = _get_meter()
        if self._otel_kind == "counter":
            self._otel_instrument = meter.create_counter(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "histogram":
            self._otel_instrument = meter.create_histogram(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "gauge":
            self._otel_instrument = meter.create_up_down_counter(self._otel_name, description=self._otel_description)
        else:
            raise ValueError(f"Unknown metric kind: {self._otel_kind}")
        return self._otel_instrument

    def _prom(self, labels: dict[str, str]):
        return self._prom_metric.labels(**labels) if labels else self._prom_metric

    def inc(self, labels: dict[str, str], amount: float) -> None:
        self._prom(labels).inc(amount)
        self._ensure_otel_instrument().add(amount, labels)
        if self._otel_kind == "gauge":
            key = _label_key(labels)
            self._last_values[key] = self._last_values.get(key, 0.0) + amount

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._prom(labels).observe(value)
        self._ensure_otel_instrument().record(value, labels)

    def set(self, labels: dict[str, str], value: float) -> None:
        self._prom(labels).set(value)
        key = _label_key(labels)
        delta = value - self._last_values.get(key, 0.0)
        if delta:
            self._ensure_otel_instrument().add(delta, labels)
        self._last_values[key] = value


_INDEX_BUILDS_PROM = Counter(
    "collection_search_index_builds_total",
    "Indexes built from scratch",
    ["kind"],
)

_INDEX_BUILD_LATENCY_PROM = Histogram(
    "collection_search_index_build_seconds",
    "Time spent building an index",
    ["kind"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)

_CACHE_LOOKUPS_PROM = Counter(
    "collection_search_cache_lookups_total",
    "Keyed index cache lookups by outcome",
    ["outcome"],
)

_CACHED_INDEXES_PROM = Gauge(
    "collection_search_cached_indexes",
    "Indexes currently held by caches",
)

_SCAN_FALLBACKS_PROM = Counter(
    "collection_search_scan_fallbacks_total",
    "Field predicates answered by a linear scan instead of an index",
    ["reason"],
)

_SEARCH_LATENCY_PROM = Histogram(
    "collection_search_search_seconds",
    "Search latency including index retrieval",
    ["operation"],
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5),
)

_SLOW_SEARCHES_PROM = Counter(
    "collection_search_slow_searches_total",
    "Searches slower than the configured threshold",
    ["operation"],
)

INDEX_BUILDS = MetricBridge(
    _INDEX_BUILDS_PROM,
    otel_name="collection_search_index_builds_total",
    otel_description="Indexes built from scratch",
    otel_kind="counter",
)

INDEX_BUILD_LATENCY = MetricBridge(
    _INDEX_BUILD_LATENCY_PROM,
    otel_name="collection_search_index_build_seconds",
    otel_description="Time spent building an index",
    otel_kind="histogram",
)

CACHE_LOOKUPS = MetricBridge(
    _CACHE_LOOKUPS_PROM,
    otel_name="collection_search_cache_lookups_total",
    otel_description="Keyed index cache lookups by outcome",
    otel_kind="counter",
)

CACHED_INDEXES = MetricBridge(
    _CACHED_INDEXES_PROM,
    otel_name="collection_search_cached_indexes",
    otel_description="Indexes currently held by caches",
    otel_kind="gauge",
)

SCAN_FALLBACKS = MetricBridge(
    _SCAN_FALLBACKS_PROM,
    otel_name="collection_search_scan_fallbacks_total",
    otel_description="Field predicates answered by a linear scan instead of an index",
    otel_kind="counter",
)

SEARCH_LATENCY = MetricBridge(
    _SEARCH_LATENCY_PROM,
    otel_name="collection_search_search_seconds",
    otel_description="Search latency including index retrieval",
    otel_kind="histogram",
)

SLOW_SEARCHES = MetricBridge(
    _SLOW_SEARCHES_PROM,
    otel_name="collection_search_slow_searches_total",
    otel_description="Searches slower than the configured threshold",
    otel_kind="counter",
)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
