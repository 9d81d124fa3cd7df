"""Prometheus metrics for the HTTP surface and the ingestion pipeline."""

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

# Create a custom registry for our metrics
REGISTRY = CollectorRegistry()

# Check if running in multiprocess mode (e.g., with gunicorn)
if "prometheus_multiproc_dir" in os.environ:
    multiprocess.MultiProcessCollector(REGISTRY)


# ============================================
# Application Info
# ============================================
APP_INFO = Info(
    "tubely_app",
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
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0],
    registry=REGISTRY,
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently in progress",
    ["method", "endpoint"],
    registry=REGISTRY,
)


# ============================================
# Ingestion Pipeline Metrics
# ============================================
INGESTION_RUNS_TOTAL = Counter(
    "ingestion_runs_total",
    "Completed ingestion pipeline runs by outcome (done or failure kind)",
    ["outcome"],
    registry=REGISTRY,
)

INGESTION_RUNS_IN_PROGRESS = Gauge(
    "ingestion_runs_in_progress",
    "Ingestion pipeline runs currently executing",
    registry=REGISTRY,
)

INGESTION_STAGE_DURATION_SECONDS = Histogram(
    "ingestion_stage_duration_seconds",
    "Time spent in each ingestion pipeline stage",
    ["stage"],
    buckets=[0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 600.0],
    registry=REGISTRY,
)

TEMP_ARTIFACTS_RELEASED_TOTAL = Counter(
    "ingestion_temp_artifacts_released_total",
    "Temporary artifacts released by the ingestion pipeline",
    registry=REGISTRY,
)

CLEANUP_ERRORS_TOTAL = Counter(
    "ingestion_cleanup_errors_total",
    "Temporary artifact deletions that failed during cleanup",
    registry=REGISTRY,
)


def set_app_info(version: str, environment: str) -> None:
    """Set application info metric."""
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })


def record_stage_duration(stage: str, duration: float) -> None:
    """Record how long a pipeline stage took."""
    INGESTION_STAGE_DURATION_SECONDS.labels(stage=stage).observe(duration)


def record_run_outcome(outcome: str) -> None:
    """Count a finished pipeline run."""
    INGESTION_RUNS_TOTAL.labels(outcome=outcome).inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
