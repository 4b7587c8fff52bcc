"""
Activity tracking and simple insights.

Counters live in Redis; per-session breakdowns are computed from the
question rows on demand.
"""

import json
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from redis import Redis
from redis.exceptions import RedisError

from intervai.database import QuestionService, SessionService
from intervai.errors import NotFoundError
from intervai.models import Difficulty
from intervai.utils.logging import analytics_logger as logger

ACTIVITY_TTL_SECONDS = 30 * 24 * 60 * 60
DAILY_COUNTER_TTL_SECONDS = 90 * 24 * 60 * 60
TRENDING_TTL_SECONDS = 7 * 24 * 60 * 60
TRENDING_KEY = "analytics:trending:topics"

# Activity types the pipeline records
ACTIVITY_TYPES = ("question_generated", "question_regenerated", "export_generated")


def today_utc() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


class AnalyticsService:
    """
    Service class for analytics.
    """

    def __init__(
        self,
        redis: Redis,
        sessions: SessionService,
        questions: QuestionService
    ):
        self.redis = redis
        self.sessions = sessions
        self.questions = questions

    # =========================================================================
    # Tracking (Redis)
    # =========================================================================

    def track_activity(self, user_id: str, activity_type: str, **metadata) -> None:
        """
        Record one activity in the user's sorted set (scored by time) and bump
        the global daily counter for the activity type.
        """
        now_ms = int(time.time() * 1000)
        member = json.dumps({**metadata, "timestamp": now_ms})
        user_key = f"analytics:user:{user_id}:{activity_type}"
        day = today_utc()
        daily_key = f"analytics:daily:{activity_type}:{day}"

        pipe = self.redis.pipeline()
        pipe.zadd(user_key, {member: now_ms})
        pipe.expire(user_key, ACTIVITY_TTL_SECONDS)
        pipe.incr(daily_key)
        pipe.expire(daily_key, DAILY_COUNTER_TTL_SECONDS)
        pipe.execute()

    def increment_topic_popularity(self, topics: Iterable[str]) -> None:
        names = {t.strip().lower() for t in topics if t and t.strip()}
        if not names:
            return
        pipe = self.redis.pipeline()
        for name in names:
            pipe.zincrby(TRENDING_KEY, 1, name)
        pipe.expire(TRENDING_KEY, TRENDING_TTL_SECONDS)
        pipe.execute()

    def get_trending_topics(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Most requested topics over the last week, highest first."""
        try:
            rows = self.redis.zrevrange(TRENDING_KEY, 0, max(limit, 1) - 1, withscores=True)
        except RedisError as e:
            logger.warning("Failed to read trending topics", error=str(e))
            return []

        return [
            {
                "topic": name.decode("utf-8") if isinstance(name, bytes) else name,
                "count": int(score),
            }
            for name, score in rows
        ]

    def get_daily_count(self, activity_type: str, day: Optional[str] = None) -> int:
        """Global count of one activity type on `day` (YYYY-MM-DD, default today, UTC)."""
        day = day or today_utc()
        try:
            value = self.redis.get(f"analytics:daily:{activity_type}:{day}")
        except RedisError as e:
            logger.warning("Failed to read daily counter", activity_type=activity_type, day=day, error=str(e))
            return 0
        return int(value) if value is not None else 0

    # =========================================================================
    # Insights (database)
    # =========================================================================

    async def get_session_analytics(self, session_id: str) -> Dict[str, Any]:
        session = await self.sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session not found")

        questions = await self.questions.list_for_session(session_id)
        breakdown = {d.value: 0 for d in Difficulty}
        for q in questions:
            level = q.get("difficulty") or Difficulty.MEDIUM.value
            breakdown[level] = breakdown.get(level, 0) + 1

        total = len(questions)
        avg_answer_length = (
            round(sum(len(q.get("answer") or "") for q in questions) / total)
            if total else 0
        )

        return {
            "sessionId": session_id,
            "totalQuestions": total,
            "pinnedQuestions": sum(1 for q in questions if q.get("is_pinned")),
            "difficultyBreakdown": breakdown,
            "avgAnswerLength": avg_answer_length,
            "topics": session.get("topics") or [],
            "role": session.get("role"),
            "experience": session.get("experience"),
        }

    async def get_user_stats(self, user_id: str) -> Dict[str, Any]:
        session_ids = await self.sessions.get_user_session_ids(user_id)
        total_questions = 0
        pinned = 0
        for sid in session_ids:
            rows = await self.questions.list_for_session(sid)
            total_questions += len(rows)
            pinned += sum(1 for q in rows if q.get("is_pinned"))

        total_sessions = len(session_ids)
        return {
            "totalSessions": total_sessions,
            "totalQuestions": total_questions,
            "pinnedQuestions": pinned,
            "averageQuestionsPerSession": round(total_questions / total_sessions) if total_sessions else 0,
        }
