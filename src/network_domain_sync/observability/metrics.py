"""Prometheus metrics for migration runs.

The engine runs once per process start, so there is no scrape endpoint:
metrics are written to a textfile for the node-exporter textfile collector.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from pathlib import Path
import time
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest, write_to_textfile


if TYPE_CHECKING:
    from collections.abc import Generator


logger = logging.getLogger(__name__)

REGISTRY = CollectorRegistry(auto_describe=True)

RUN_COUNT = Counter(
    "domain_sync_runs_total",
    "Migration runs by outcome",
    ["outcome"],
    registry=REGISTRY,
)

ROWS_REWRITTEN = Counter(
    "domain_sync_rows_rewritten_total",
    "Rows and options rewritten",
    ["table"],
    registry=REGISTRY,
)

NOTIFICATION_COUNT = Counter(
    "domain_sync_notifications_total",
    "Post-migration notifications by delivery status",
    ["status"],
    registry=REGISTRY,
)

RUN_LATENCY = Histogram(
    "domain_sync_run_seconds",
    "Duration of migration runs",
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0),
    registry=REGISTRY,
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        target = histogram.labels(**labels) if labels else histogram
        target.observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Render the migration metrics in Prometheus text format."""
    return generate_latest(REGISTRY)


def write_metrics_textfile(path: Path) -> None:
    """Atomically write metrics for node-exporter; failures are logged, not raised."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        write_to_textfile(str(path), REGISTRY)
    except OSError as exc:
        logger.warning("Failed to write metrics textfile %s: %s", path, exc)
