"""Utility modules for INTERVAI."""

from intervai.utils.logging import (
    get_logger,
    get_log_buffer,
    configure_logging,
    LogLevel,
    LogEntry,
    AppLogger,
    api_logger,
    queue_logger,
    worker_logger,
    cache_logger,
    notification_logger,
    analytics_logger,
    export_logger,
)
from intervai.utils.best_effort import best_effort

__all__ = [
    "get_logger",
    "get_log_buffer",
    "configure_logging",
    "LogLevel",
    "LogEntry",
    "AppLogger",
    "api_logger",
    "queue_logger",
    "worker_logger",
    "cache_logger",
    "notification_logger",
    "analytics_logger",
    "export_logger",
    "best_effort",
]
