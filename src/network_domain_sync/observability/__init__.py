"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from network_domain_sync.observability.context import get_trace_context, set_trace_context, trace_context
from network_domain_sync.observability.logging import JsonFormatter, configure_logging
from network_domain_sync.observability.metrics import (
    NOTIFICATION_COUNT,
    ROWS_REWRITTEN,
    RUN_COUNT,
    RUN_LATENCY,
    get_metrics,
    track_latency,
    write_metrics_textfile,
)
from network_domain_sync.observability.tracing import (
    configure_trace_exporter,
    create_span,
    get_tracer,
    init_tracing,
)


__all__ = [
    "NOTIFICATION_COUNT",
    "ROWS_REWRITTEN",
    "RUN_COUNT",
    "RUN_LATENCY",
    "JsonFormatter",
    "configure_logging",
    "configure_trace_exporter",
    "create_span",
    "get_metrics",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
    "write_metrics_textfile",
]
