# tracker/monitoring.py
"""
Centralized monitoring: Prometheus metrics, structured JSON logging, optional Sentry.

Env vars:
- PROMETHEUS_ENABLED (default: true)
- SENTRY_DSN (optional)
- LOG_AS_JSON (default: true)
- LOG_LEVEL (default: INFO)
- ENVIRONMENT (default: development)
"""

import os
import logging
import time
from typing import Tuple

from prometheus_client import (
    Counter, Histogram, Gauge,
    generate_latest, CONTENT_TYPE_LATEST, REGISTRY,
)
from pythonjsonlogger import jsonlogger

# Sentry is an optional extra; nothing is initialized without it
try:
    import sentry_sdk
    _HAS_SENTRY = True
except ImportError:
    _HAS_SENTRY = False

# --- ENV flags
PROMETHEUS_ENABLED = os.getenv("PROMETHEUS_ENABLED", "true").lower() in ("1", "true", "yes")
SENTRY_DSN = os.getenv("SENTRY_DSN", None)
LOG_AS_JSON = os.getenv("LOG_AS_JSON", "true").lower() in ("1", "true", "yes")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# --- Logger setup
def setup_logger(name: str = "request-tracker", level: int = None) -> logging.Logger:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO")) if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if LOG_AS_JSON:
            handler.setFormatter(jsonlogger.JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s"
            ))
        logger.addHandler(handler)
    return logger


logger = setup_logger()

# --- Sentry (optional)
if SENTRY_DSN and _HAS_SENTRY:
    sentry_sdk.init(dsn=SENTRY_DSN, environment=ENVIRONMENT)
    logger.info("Sentry initialized")


# --- Prometheus metrics
REQUEST_COUNT = Counter(
    "tracker_http_requests_total",
    "Total /api requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "tracker_http_request_latency_seconds",
    "Request latency in seconds",
    ["endpoint"],
)

ADAPTER_ATTEMPTS = Counter(
    "tracker_adapter_attempts_total",
    "Source adapter calls",
    ["adapter", "operation", "outcome"],
)

READ_SOURCE = Counter(
    "tracker_read_source_total",
    "Which tier of the read chain answered",
    ["source"],
)

WRITE_COMMITS = Counter(
    "tracker_write_commits_total",
    "Mutations by where they were committed",
    ["operation", "committed_to"],
)

EXPORT_OUTCOMES = Counter(
    "tracker_export_total",
    "Spreadsheet export attempts",
    ["outcome"],
)

UNKNOWN_OPTION_VALUES = Counter(
    "tracker_unknown_option_values_total",
    "Values outside the configured option lists",
    ["field"],
)

LAST_LIST_SIZE = Gauge(
    "tracker_last_list_size",
    "Records in the last read response",
)


# --- Helper wrappers (never crash the app)
def observe_request(start_ts: float, endpoint: str, method: str, status: str):
    try:
        REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.time() - start_ts)
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
    except Exception:
        pass


def inc_adapter_attempt(adapter: str, operation: str, outcome: str):
    try:
        ADAPTER_ATTEMPTS.labels(adapter=adapter, operation=operation, outcome=outcome).inc()
    except Exception:
        pass


def inc_read_source(source: str):
    try:
        READ_SOURCE.labels(source=source).inc()
    except Exception:
        pass


def inc_write_commit(operation: str, committed_to: str):
    try:
        WRITE_COMMITS.labels(operation=operation, committed_to=committed_to).inc()
    except Exception:
        pass


def inc_export(outcome: str):
    try:
        EXPORT_OUTCOMES.labels(outcome=outcome).inc()
    except Exception:
        pass


def inc_unknown_option(field: str):
    try:
        UNKNOWN_OPTION_VALUES.labels(field=field).inc()
    except Exception:
        pass


def set_last_list_size(n: int):
    try:
        LAST_LIST_SIZE.set(n)
    except Exception:
        pass


def prometheus_metrics_response() -> Tuple[bytes, str]:
    """Return (body_bytes, content_type) for Prometheus scrape."""
    try:
        return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
    except Exception:
        return b"", CONTENT_TYPE_LATEST
