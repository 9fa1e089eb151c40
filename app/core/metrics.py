"""Application metrics using the Prometheus client library.

This module defines all metrics in one place, a single inventory of
everything the service measures.  Other modules import specific metrics
and increment/observe them at the point of action.

Counters only go up and are read as rates; gauges go up and down and
describe current saturation; histograms bucket observations so Prometheus
can compute percentiles with histogram_quantile().  Prometheus pulls the
current values from GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # 5-50ms: point reads and cache hits; 100-250ms: the progress
    # transaction; 1s+: something is wrong with the store.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Application-specific metrics
# ---------------------------------------------------------------------------

PROGRESS_UPDATES = Counter(
    "lesson_progress_updates_total",
    "Committed lesson progress transactions by completed-lesson delta",
    ["delta"],  # "-1", "0" or "1"
)

PROGRESS_CONFLICTS = Counter(
    "lesson_progress_conflicts_total",
    "Progress transactions rejected because the course aggregate changed",
)

ACTIVITY_RECORD_FAILURES = Counter(
    "activity_record_failures_total",
    "Activity log entries that could not be handed to the queue",
    ["activity_type"],  # "study", "notes" or "chat"
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],  # "activity_log"
)
