"""
Content cache for generated question/answer pairs.

Two generation requests that differ only in letter case, surrounding
whitespace, topic order or repeated topics share one cache entry. The cache
is purely an optimization: every read failure is treated as a miss.
"""

import hashlib
import json
from typing import Any, Dict, Iterable, List, Optional

from redis import Redis
from redis.exceptions import RedisError

from intervai.utils.logging import cache_logger as logger

KEY_PREFIX = "questions:"
DEFAULT_TTL_SECONDS = 3600


def normalize_topics(topics: Iterable[str]) -> List[str]:
    """Lowercase, trim, drop blanks and duplicates, sort."""
    return sorted({t.strip().lower() for t in topics if t and t.strip()})


class ContentCache:
    """Redis-backed cache of generation results keyed by request digest."""

    def __init__(self, redis: Redis, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(role: str, experience: str, topics: Iterable[str]) -> str:
        """
        Deterministic digest of the normalized generation parameters.

        Returns:
            64-char SHA-256 hex string (without the storage prefix)
        """
        material = "|".join([
            role.strip().lower(),
            experience.strip().lower(),
            ",".join(normalize_topics(topics)),
        ])
        return hashlib.sha256(material.encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[List[Dict[str, Any]]]:
        """Cached pairs for `key`, or None on miss, bad payload or Redis error."""
        try:
            raw = self.redis.get(KEY_PREFIX + key)
        except RedisError as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            return None

        if raw is None:
            return None

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Discarding undecodable cache entry", key=key, error=str(e))
            return None

        if not isinstance(value, list):
            return None
        return value

    def set(self, key: str, value: List[Dict[str, Any]]) -> bool:
        """Store `value` with the cache TTL. Last writer wins."""
        try:
            self.redis.setex(KEY_PREFIX + key, self.ttl_seconds, json.dumps(value))
            return True
        except (RedisError, TypeError, ValueError) as e:
            logger.warning("Cache write failed", key=key, error=str(e))
            return False

    def invalidate(self, prefix: str = "") -> int:
        """
        Delete every cached entry whose digest starts with `prefix`.

        Uses SCAN so a large keyspace never blocks Redis.

        Returns:
            Number of deleted keys (0 on failure)
        """
        deleted = 0
        try:
            batch = []
            for k in self.redis.scan_iter(match=f"{KEY_PREFIX}{prefix}*", count=500):
                batch.append(k)
                if len(batch) >= 500:
                    deleted += self.redis.delete(*batch)
                    batch = []
            if batch:
                deleted += self.redis.delete(*batch)
        except RedisError as e:
            logger.error("Cache invalidation failed", prefix=prefix, error=str(e), deleted=deleted)
            return 0

        logger.info("Cache invalidated", prefix=prefix or "*", deleted=deleted)
        return deleted
