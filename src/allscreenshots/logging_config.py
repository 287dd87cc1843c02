# -*- coding: utf-8 -*-
"""
Structured JSON logging configuration.

Records carry the operation id of the capture, poll or API call they
belong to, so retries and status transitions of one job can be followed
across interleaved async tasks.
"""
import logging
import sys

from pythonjsonlogger.json import JsonFormatter as jsonlogger

from . import __version__
from .config import settings
from .context import get_operation_id
from .errors import ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class OperationIDFilter(logging.Filter):
    """Add operation_id to log records."""

    def filter(self, record):
        record.operation_id = get_operation_id() or "-"
        return True


class CustomJsonFormatter(jsonlogger):
    """JSON formatter stamping SDK version and operation id, skipping empty extras."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["operation_id"] = getattr(record, "operation_id", "-")
        log_record["sdk_version"] = __version__
        # e.g. error_code=None on API errors without a code
        for key in [key for key, value in log_record.items() if value is None]:
            del log_record[key]


def resolve_level(level: str | None) -> int:
    """Numeric level for a name such as 'info'; unknown names are rejected."""
    name = (level or settings.LOG_LEVEL).strip().upper()
    if name not in LOG_LEVELS:
        raise ConfigurationError(
            f"Unknown log level '{level}' (expected one of {', '.join(LOG_LEVELS)})"
        )
    return getattr(logging, name)


def setup_logging(level: str | None = None, stream=None):
    """
    Configure structured JSON logging on the root logger.

    Applications call this once; importing the package never touches
    the root logger.

    Raises:
        ConfigurationError: unknown level name
    """
    numeric_level = resolve_level(level)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    formatter = CustomJsonFormatter(
        fmt="%(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
        timestamp="@timestamp",
    )
    handler.setFormatter(formatter)
    handler.addFilter(OperationIDFilter())
    root_logger.addHandler(handler)

    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger
