"""
Structured JSON logging for the PIF submission pipeline

Two channels are used throughout the package:

- the regular per-module loggers (``get_logger(__name__)``), which carry the
  short progress and summary messages also shown to the user, and
- the diagnostic channel (``get_diagnostic_logger()``), which carries full
  technical detail (database error text, tracebacks, bound parameter names)
  for support escalation. Nothing written there is shown to end users.
"""
import logging
import os
import sys
import time

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "pif_pipeline"
DIAGNOSTIC_LOGGER_NAME = "pif_pipeline.diagnostics"

# Log level mapping
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that adds timestamp, level, logger, module and function
    fields to every record.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = self.formatTime(record, self.datefmt)

        if log_record.get("level"):
            log_record["level"] = log_record["level"].upper()
        else:
            log_record["level"] = record.levelname

        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Setup and configure a logger

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL); defaults to
            the LOG_LEVEL environment variable
        format_type: "json" or "text"; defaults to the LOG_FORMAT environment
            variable, then "json"

    Returns:
        Configured logger instance
    """
    log_level_str = level or os.getenv("LOG_LEVEL", "INFO")
    log_level = LOG_LEVELS.get(log_level_str.upper(), logging.INFO)
    format_type = format_type or os.getenv("LOG_FORMAT", "json")

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    # Diagnostics go to stderr so they never mix with user-facing output
    stream = sys.stderr if name == DIAGNOSTIC_LOGGER_NAME else sys.stdout
    handler = logging.StreamHandler(stream)
    handler.setLevel(log_level)

    if format_type == "json":
        formatter = CustomJsonFormatter(
            fmt="%(timestamp)s %(level)s %(logger)s %(module)s %(function)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    else:
        # Text format for local development
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance, configuring it on first use

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        return setup_logger(name)

    return logger


def get_diagnostic_logger() -> logging.Logger:
    """Return the diagnostic channel logger (full technical detail)."""
    return get_logger(DIAGNOSTIC_LOGGER_NAME)


class log_operation:
    """
    Context manager for logging operation duration

    The measured duration is kept on ``elapsed`` so callers can report it in
    their own summary messages.

    Usage:
        with log_operation("Loading staging tables", logger=logger, site="ANO") as op:
            # do work
            pass
        print(op.elapsed)
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        """
        Initialize operation logger

        Args:
            operation_name: Name of the operation
            logger: Logger instance (uses the package logger if None)
            **extra_fields: Additional fields to include in logs
        """
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time: float | None = None
        self.elapsed: float = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.info(
            f"Starting: {self.operation_name}",
            extra={"operation": self.operation_name, **self.extra_fields}
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - self.start_time

        if exc_type is None:
            self.logger.info(
                f"Completed: {self.operation_name}",
                extra={
                    "operation": self.operation_name,
                    "duration_seconds": round(self.elapsed, 3),
                    "status": "success",
                    **self.extra_fields
                }
            )
        else:
            # Short line here; the full traceback belongs to the diagnostic channel
            self.logger.error(
                f"Failed: {self.operation_name}",
                extra={
                    "operation": self.operation_name,
                    "duration_seconds": round(self.elapsed, 3),
                    "status": "error",
                    "error_type": exc_type.__name__,
                    **self.extra_fields
                },
            )
            get_diagnostic_logger().error(
                f"{self.operation_name} failed: {exc_val}",
                extra={"operation": self.operation_name, **self.extra_fields},
                exc_info=(exc_type, exc_val, exc_tb),
            )
        return False  # Don't suppress exceptions


def set_log_level(level: str) -> None:
    """
    Change the level of every pipeline logger created so far

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level = LOG_LEVELS.get(level.upper(), logging.INFO)
    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger):
            continue
        if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
            logger.setLevel(log_level)
            for handler in logger.handlers:
                handler.setLevel(log_level)
