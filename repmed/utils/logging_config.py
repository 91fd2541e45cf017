"""Structured logging configuration for repmed."""

import json
import logging
import sys
import time
import traceback
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any

_EXTRA_FIELDS = ("run_id", "seed", "method", "metrics", "error_type", "duration_ms")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_obj[key] = getattr(record, key)

        if record.exc_info:
            log_obj["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_obj, default=str)


class AnalysisMetricsLogger:
    """Logger for analysis runs and resampling diagnostics."""

    def __init__(self, logger_name: str = "repmed.metrics"):
        self.logger = logging.getLogger(logger_name)

    def log_run_start(
        self,
        run_id: str,
        n_subjects: int,
        replications: int,
        methods: list[str],
        levels: list[float],
        seed: int,
    ):
        """Log start of an analysis run.

        Args:
            run_id: Identifier of the run
            n_subjects: Number of observations in the dataset
            replications: Requested bootstrap replications
            methods: Requested interval methods
            levels: Requested confidence levels
            seed: Root random seed
        """
        self.logger.info(
            "Mediation analysis started",
            extra={
                "run_id": run_id,
                "seed": seed,
                "metrics": {
                    "n_subjects": n_subjects,
                    "replications": replications,
                    "methods": methods,
                    "levels": levels,
                },
            },
        )

    def log_run_complete(
        self,
        run_id: str,
        estimate: float,
        replications_used: int,
        discarded: int,
        duration_ms: float,
        truncated: bool = False,
    ):
        """Log completion of an analysis run."""
        metrics = {
            "estimate": estimate,
            "replications_used": replications_used,
            "discarded": discarded,
            "truncated": truncated,
            "resamples_per_second": replications_used / (duration_ms / 1000) if duration_ms > 0 else 0,
        }
        self.logger.info(
            "Mediation analysis complete",
            extra={"run_id": run_id, "metrics": metrics, "duration_ms": duration_ms},
        )

    def log_discards(self, run_id: str, discarded: int, requested: int):
        if not discarded:
            return
        self.logger.warning(
            "Discarded %d of %d resamples with singular designs",
            discarded,
            requested,
            extra={"run_id": run_id, "metrics": {"discarded": discarded, "requested": requested}},
        )

    def log_method_failure(self, run_id: str, method: str, message: str):
        self.logger.warning(
            "Interval method %s failed: %s",
            method,
            message,
            extra={"run_id": run_id, "method": method, "error_type": message.split(":", 1)[0]},
        )


def configure_logging(
    level: str = "INFO",
    log_file: str | None = None,
    structured: bool = True,
) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path for logs
        structured: Whether to use structured JSON logging
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger("repmed").setLevel(log_level)


def log_performance(logger: logging.Logger | None = None):
    """Decorator to log function performance.

    Args:
        logger: Logger to use (defaults to the function's module logger)
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            log = logger or logging.getLogger(func.__module__)
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                log.error(
                    f"Function {func.__name__} failed",
                    extra={"duration_ms": duration_ms, "error_type": type(e).__name__},
                )
                raise
            duration_ms = (time.perf_counter() - start_time) * 1000
            log.debug(
                f"Function {func.__name__} completed",
                extra={"duration_ms": duration_ms},
            )
            return result

        return wrapper
    return decorator
