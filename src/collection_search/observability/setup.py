"""Process-level observability bootstrap for applications embedding the engine."""

from __future__ import annotations

from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider

from collection_search.config import Settings, get_settings
from collection_search.observability.logging import configure_logging
from collection_search.observability.metrics import init_metrics
from collection_search.observability.tracing import init_tracing


def setup_observability(
    settings: Settings | None = None,
    *,
    logger_levels: dict[str, str] | None = None,
    resource_attributes: dict[str, str] | None = None,
) -> tuple[MeterProvider, TracerProvider]:
    """Configure logging, metrics and tracing from ``settings``.

    Libraries never call this; the host application does, once, at startup.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_output=settings.json_logs, logger_levels=logger_levels)
    meter_provider = init_metrics(service_name=settings.service_name, resource_attributes=resource_attributes)
    tracer_provider = init_tracing(service_name=settings.service_name, resource_attributes=resource_attributes)
    return meter_provider, tracer_provider
