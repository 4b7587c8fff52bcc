"""
Notification hub: Redis pub/sub broadcast plus a capped per-user history.

Publishing never raises. A user who is not subscribed at publish time can
still find the event in their history list for a week.
"""

import json
import secrets
import string
import time
from typing import Any, Dict, Iterable, List, Optional

from redis import Redis
from redis.exceptions import RedisError

from intervai.utils.logging import notification_logger as logger

HISTORY_LIMIT = 100
HISTORY_TTL_SECONDS = 7 * 24 * 60 * 60
READ_STATE_TTL_SECONDS = 30 * 24 * 60 * 60

_ID_ALPHABET = string.ascii_lowercase + string.digits


def channel_name(user_id: str) -> str:
    return f"user:{user_id}"


def history_key(user_id: str) -> str:
    return f"notifications:user:{user_id}:list"


def read_key(user_id: str) -> str:
    return f"notifications:user:{user_id}:read"


def _new_id(now_ms: int) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"notif_{now_ms}_{suffix}"


def _decode(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class NotificationHub:
    """Per-user notifications over a shared Redis connection."""

    def __init__(self, redis: Redis):
        self.redis = redis

    def publish(self, user_id: str, event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Broadcast `event` on the user's channel and record it in their history.

        Returns:
            The stored envelope (event plus id and timestamp), or None on failure
        """
        now_ms = int(time.time() * 1000)
        envelope = {**event, "id": _new_id(now_ms), "timestamp": now_ms}

        try:
            message = json.dumps(envelope)
            key = history_key(user_id)
            pipe = self.redis.pipeline()
            pipe.publish(channel_name(user_id), message)
            pipe.lpush(key, message)
            pipe.ltrim(key, 0, HISTORY_LIMIT - 1)
            pipe.expire(key, HISTORY_TTL_SECONDS)
            pipe.execute()
        except (RedisError, TypeError, ValueError) as e:
            logger.warning(
                "Failed to publish notification",
                user_id=user_id,
                type=event.get("type"),
                error=str(e)
            )
            return None

        logger.debug("Notification published", user_id=user_id, type=event.get("type"), id=envelope["id"])
        return envelope

    def notify_job_complete(
        self,
        user_id: str,
        job_type: str,
        job_id: str,
        result: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        return self.publish(user_id, {
            "type": "job_complete",
            "jobType": job_type,
            "jobId": job_id,
            "result": result,
            "message": f"Your {job_type} job has completed successfully",
        })

    def notify_job_failed(
        self,
        user_id: str,
        job_type: str,
        job_id: str,
        error: str
    ) -> Optional[Dict[str, Any]]:
        return self.publish(user_id, {
            "type": "job_failed",
            "jobType": job_type,
            "jobId": job_id,
            "error": error,
            "message": f"Your {job_type} job has failed",
        })

    def list(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        """
        Most recent notifications first, each annotated with `read`.

        Read state only annotates; read notifications are still returned.
        """
        limit = max(1, min(limit, HISTORY_LIMIT))
        raw = self.redis.lrange(history_key(user_id), 0, limit - 1)
        read_ids = {_decode(i) for i in self.redis.smembers(read_key(user_id))}

        events = []
        for item in raw:
            try:
                event = json.loads(item)
            except (TypeError, ValueError):
                logger.warning("Skipping undecodable notification", user_id=user_id)
                continue
            event["read"] = event.get("id") in read_ids
            events.append(event)
        return events

    def mark_read(self, user_id: str, notification_ids: Iterable[str]) -> int:
        """Add ids to the user's read set. Idempotent."""
        ids = [i for i in notification_ids if i]
        if not ids:
            return 0
        key = read_key(user_id)
        pipe = self.redis.pipeline()
        pipe.sadd(key, *ids)
        pipe.expire(key, READ_STATE_TTL_SECONDS)
        added, _ = pipe.execute()
        return added

    def clear(self, user_id: str) -> None:
        """Delete the history list. Read state is left alone."""
        self.redis.delete(history_key(user_id))
