"""
Redis-backed services shared by the API and the worker.
"""

from .cache import ContentCache, normalize_topics
from .notifications import NotificationHub
from .analytics import AnalyticsService

__all__ = [
    "ContentCache",
    "normalize_topics",
    "NotificationHub",
    "AnalyticsService",
]
