"""
Structured JSON logging with ingestion run correlation.

Provides:
- JSON format for log aggregation
- Run correlation IDs bound for the duration of an ingestion run
- Structured metadata via the ``extra_fields`` record attribute
- Performance tracking
"""

import logging
import json
import time
import uuid
from contextvars import ContextVar
from typing import Optional
from datetime import datetime, timezone

# Context variable for the current ingestion run
run_id_ctx: ContextVar[Optional[str]] = ContextVar("run_id", default=None)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in JSON format with standardized fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        run_id = getattr(record, "run_id", None) or run_id_ctx.get()
        if run_id:
            log_data["run_id"] = run_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class PerformanceTracker:
    """
    Context manager for tracking operation performance.

    Usage:
        with PerformanceTracker("ingest", logger, table="records"):
            # ... perform operation
            pass
    """

    def __init__(
        self,
        operation: str,
        logger: logging.Logger,
        log_level: int = logging.INFO,
        **extra_fields,
    ):
        """
        Initialize performance tracker.

        Args:
            operation: Operation name
            logger: Logger instance
            log_level: Log level for completion message
            **extra_fields: Additional structured fields
        """
        self.operation = operation
        self.logger = logger
        self.log_level = log_level
        self.extra_fields = extra_fields
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self):
        """Start timing."""
        self.start_time = time.perf_counter()
        self.logger.debug(
            f"Starting operation: {self.operation}",
            extra={"extra_fields": {"operation": self.operation, **self.extra_fields}},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Log completion with duration."""
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000

        extra = {
            "operation": self.operation,
            "duration_ms": round(self.duration_ms, 2),
            **self.extra_fields,
        }

        if exc_type:
            extra["error"] = str(exc_val)
            extra["error_type"] = exc_type.__name__
            self.logger.error(
                f"Operation failed: {self.operation}",
                extra={"extra_fields": extra},
            )
        else:
            self.logger.log(
                self.log_level,
                f"Operation completed: {self.operation}",
                extra={"extra_fields": extra},
            )


def setup_logging(log_level: str = "INFO", json_format: bool = True):
    """
    Configure application logging.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting if True, standard format if False
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, log_level.upper()))

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # SQLAlchemy echoes through its own loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def set_run_id(run_id: Optional[str] = None) -> str:
    """
    Bind an ingestion run ID to the current context.

    Args:
        run_id: Run ID (generated if not provided)

    Returns:
        Run ID
    """
    if run_id is None:
        run_id = uuid.uuid4().hex[:12]
    run_id_ctx.set(run_id)
    return run_id


def clear_run_id():
    """Clear run ID from context."""
    run_id_ctx.set(None)


def configure_logging(settings=None):
    """
    Configure logging from application settings.

    Args:
        settings: Settings to use (defaults to the cached application settings)
    """
    from jsonlite.config.settings import get_settings

    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, json_format=settings.json_logs)
