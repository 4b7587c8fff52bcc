"""
Redis connection management.

One connection per process is created by the application context and
shared by the RQ queues, the content cache, notifications and analytics.
"""

from typing import Dict, Any, Iterable

from redis import Redis


def create_redis_connection(redis_url: str) -> Redis:
    """
    Build the Redis connection.

    Raises:
        ValueError: If the URL is empty
    """
    if not redis_url:
        raise ValueError(
            "REDIS_URL environment variable is required for the job queues. "
            "Set up a local Redis or a hosted one and configure REDIS_URL."
        )

    # rediss:// URLs enable TLS on their own
    return Redis.from_url(
        redis_url,
        decode_responses=False,  # RQ needs bytes
        socket_timeout=10,
        socket_connect_timeout=10,
        retry_on_timeout=True,
        health_check_interval=30,
    )


def describe_redis_url(redis_url: str) -> str:
    """Host part of the URL, without credentials, for log lines."""
    return redis_url.split("@")[-1] if "@" in redis_url else redis_url.split("//")[-1]


def redis_health_check(redis: Redis, queues: Iterable) -> Dict[str, Any]:
    """
    Check Redis connection health.

    Args:
        redis: Shared connection
        queues: JobQueue instances to report on

    Returns:
        Dict with health status and per-queue registry sizes
    """
    try:
        redis.ping()
        return {
            "status": "healthy",
            "connected": True,
            "queues": {q.name: q.counts() for q in queues},
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "connected": False,
            "error": str(e)
        }
