"""
Prometheus metrics for monitoring and observability.

Provides counters, histograms, and gauges for tracking:
- Ingestion runs and inserted rows
- Schema evolution (DDL operations, table width)
- Query performance
"""

import time
from typing import Callable
from functools import wraps
from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    CollectorRegistry,
)

from jsonlite.common.errors import QueryNoSuchColumn
from jsonlite.config.settings import get_settings

# Create a global registry
REGISTRY = CollectorRegistry()

# ========== Counters ==========

# Ingestion runs
ingest_runs_total = Counter(
    "ingest_runs_total",
    "Total number of ingestion runs",
    ["status"],  # success/failure
    registry=REGISTRY,
)

# Rows inserted by committed runs
records_ingested_total = Counter(
    "records_ingested_total",
    "Total number of records committed to storage",
    registry=REGISTRY,
)

# Schema changes
ddl_operations_total = Counter(
    "ddl_operations_total",
    "Total number of DDL operations executed",
    ["kind"],  # create_table/add_column
    registry=REGISTRY,
)

# Queries
queries_total = Counter(
    "queries_total",
    "Total number of read queries",
    ["status"],  # success/no_such_column/failure
    registry=REGISTRY,
)

# ========== Histograms ==========

ingest_duration_seconds = Histogram(
    "ingest_duration_seconds",
    "Time to decode, load and commit one ingestion run",
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0),
    registry=REGISTRY,
)

query_latency_seconds = Histogram(
    "query_latency_seconds",
    "Time to execute a read query",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
    registry=REGISTRY,
)

# ========== Gauges ==========

# Width of the committed table
schema_columns = Gauge(
    "schema_columns",
    "Number of columns in the committed table",
    registry=REGISTRY,
)


def metrics_enabled(settings=None) -> bool:
    """
    Whether metric recording is switched on.

    Args:
        settings: Settings of the calling component (defaults to the cached
            application settings)
    """
    return (settings or get_settings()).metrics_enabled


# ========== Metric Decorators ==========

def track_query_time(func: Callable):
    """
    Decorator to track read query latency and outcome.

    Queries raising QueryNoSuchColumn are counted under their own status.
    When the decorated function is a method, the ``settings`` attribute of
    its instance decides whether anything is recorded.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        settings = getattr(args[0], "settings", None) if args else None
        start_time = time.time()
        status = "success"
        try:
            return func(*args, **kwargs)
        except Exception as e:
            status = "no_such_column" if isinstance(
                e, QueryNoSuchColumn) else "failure"
            raise
        finally:
            if metrics_enabled(settings):
                query_latency_seconds.observe(time.time() - start_time)
                queries_total.labels(status=status).inc()

    return wrapper


def get_metrics() -> bytes:
    """
    Get current metrics in Prometheus format.

    Returns:
        Metrics as bytes
    """
    return generate_latest(REGISTRY)
