"""
Centralized logging for INTERVAI.

Every AppLogger writes through Python logging and also keeps the entry in an
in-memory ring buffer, so the health endpoint can report recent failures of
the web process or a worker without external log aggregation.
"""

import logging
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Optional, List, Dict, Any


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LogEntry:
    """A single log entry."""

    def __init__(
        self,
        level: LogLevel,
        message: str,
        source: str = "system",
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.timestamp = datetime.now(timezone.utc)
        self.level = level
        self.message = message
        self.source = source
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "message": self.message,
            "source": self.source,
            "metadata": self.metadata
        }


class LogBuffer:
    """
    Thread-safe circular buffer holding the most recent log entries.
    """

    def __init__(self, max_size: int = 500):
        self._buffer: deque = deque(maxlen=max_size)
        self._lock = Lock()
        self._error_count = 0
        self._warning_count = 0

    def add(self, entry: LogEntry):
        with self._lock:
            self._buffer.append(entry)
            if entry.level in (LogLevel.ERROR, LogLevel.CRITICAL):
                self._error_count += 1
            elif entry.level == LogLevel.WARNING:
                self._warning_count += 1

    def get_recent(
        self,
        limit: int = 50,
        level: Optional[LogLevel] = None,
        source: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Get recent log entries, newest first, optionally filtered."""
        with self._lock:
            entries = list(self._buffer)

        if level:
            entries = [e for e in entries if e.level == level]
        if source:
            entries = [e for e in entries if e.source == source]

        entries.reverse()
        return [e.to_dict() for e in entries[:limit]]

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            by_source: Dict[str, int] = {}
            for entry in self._buffer:
                by_source[entry.source] = by_source.get(entry.source, 0) + 1

            return {
                "buffered": len(self._buffer),
                "by_source": by_source,
                "error_count": self._error_count,
                "warning_count": self._warning_count
            }

    def clear(self):
        with self._lock:
            self._buffer.clear()
            self._error_count = 0
            self._warning_count = 0


_log_buffer = LogBuffer()


def get_log_buffer() -> LogBuffer:
    """Get the process-wide log buffer."""
    return _log_buffer


def configure_logging(level: str = "INFO"):
    """Set up root logging once per process (web, worker or maintenance)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


class AppLogger:
    """
    Logger that writes to Python logging and to the in-memory buffer.

    Context is passed as keyword metadata:
        queue_logger.info("Job enqueued", job_id=job.id, queue=name)
    """

    def __init__(self, source: str):
        self.source = source
        self._logger = logging.getLogger(f"intervai.{source}")

    def _log(
        self,
        level: LogLevel,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: bool = False
    ):
        _log_buffer.add(LogEntry(level, message, self.source, metadata))

        log_level = getattr(logging, level.value.upper())
        extra_msg = f" | {metadata}" if metadata else ""
        self._logger.log(log_level, f"{message}{extra_msg}", exc_info=exc_info)

    def debug(self, message: str, **metadata):
        self._log(LogLevel.DEBUG, message, metadata or None)

    def info(self, message: str, **metadata):
        self._log(LogLevel.INFO, message, metadata or None)

    def warning(self, message: str, **metadata):
        self._log(LogLevel.WARNING, message, metadata or None)

    def error(self, message: str, exc_info: bool = False, **metadata):
        self._log(LogLevel.ERROR, message, metadata or None, exc_info=exc_info)

    def critical(self, message: str, **metadata):
        self._log(LogLevel.CRITICAL, message, metadata or None, exc_info=True)


def get_logger(source: str) -> AppLogger:
    """Get an AppLogger for a specific source/module."""
    return AppLogger(source)


# Pre-configured loggers for common sources
api_logger = AppLogger("api")
queue_logger = AppLogger("job_queue")
worker_logger = AppLogger("worker")
cache_logger = AppLogger("cache")
notification_logger = AppLogger("notifications")
analytics_logger = AppLogger("analytics")
export_logger = AppLogger("export")
