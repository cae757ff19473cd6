"""Prometheus metrics for the admin API.

Tracks HTTP traffic, file assignment throughput and response cache
effectiveness.
"""

import os

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
    multiprocess,
)

REGISTRY = CollectorRegistry()

# Gunicorn/uvicorn workers share metrics through a directory
if "PROMETHEUS_MULTIPROC_DIR" in os.environ:
    multiprocess.MultiProcessCollector(REGISTRY)


# ============================================
# Application Info
# ============================================
APP_INFO = Info(
    "document_desk_app",
    "Application information",
    registry=REGISTRY,
)


# ============================================
# HTTP Request Metrics
# ============================================
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY,
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently in progress",
    ["method", "endpoint"],
    registry=REGISTRY,
)


# ============================================
# File Assignment Metrics
# ============================================
FILES_ASSIGNED_TOTAL = Counter(
    "files_assigned_total",
    "Files written back as assigned",
    ["strategy"],
    registry=REGISTRY,
)

ASSIGNMENT_BATCH_FAILURES_TOTAL = Counter(
    "assignment_batch_failures_total",
    "Assignment write batches that failed to commit",
    registry=REGISTRY,
)

ASSIGNMENT_PLAN_DURATION_SECONDS = Histogram(
    "assignment_plan_duration_seconds",
    "Time spent computing an assignment plan in memory",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5],
    registry=REGISTRY,
)


# ============================================
# Response Cache Metrics
# ============================================
CACHE_LOOKUPS_TOTAL = Counter(
    "response_cache_lookups_total",
    "Response cache lookups by namespace and result",
    ["namespace", "result"],
    registry=REGISTRY,
)

CACHE_INVALIDATIONS_TOTAL = Counter(
    "response_cache_invalidated_entries_total",
    "Entries removed by prefix invalidation",
    ["namespace"],
    registry=REGISTRY,
)


def set_app_info(version: str, environment: str) -> None:
    """Set application info metric."""
    APP_INFO.info({"version": version, "environment": environment})


def record_cache_lookup(namespace: str, hit: bool) -> None:
    """Count a cache hit or miss for a key namespace."""
    CACHE_LOOKUPS_TOTAL.labels(namespace=namespace, result="hit" if hit else "miss").inc()


def get_metrics() -> bytes:
    """Render all metrics in Prometheus text format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Content type for the metrics endpoint."""
    return CONTENT_TYPE_LATEST
