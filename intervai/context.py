"""
Process-wide application context.

Built once per process (the API's lifespan, or the worker launcher before
it forks) and handed to every component that needs Redis, the database
services, the queues or the LLM adapter.
"""

from dataclasses import dataclass
from typing import Optional

from redis import Redis

from intervai.agents.question_writer import QuestionWriter
from intervai.config import AppConfig, config as default_config
from intervai.database import QuestionService, SessionService, create_supabase_admin_client
from intervai.export.storage import ExportStorage
from intervai.queue.connection import create_redis_connection
from intervai.queue.job_queue import (
    EXPORT_POLICY,
    GENERATION_POLICY,
    JobQueue,
    QueuePolicy,
)
from intervai.services import AnalyticsService, ContentCache, NotificationHub


@dataclass
class AppContext:
    config: AppConfig
    redis: Redis
    sessions: SessionService
    questions: QuestionService
    cache: ContentCache
    notifications: NotificationHub
    analytics: AnalyticsService
    generation_queue: JobQueue
    export_queue: JobQueue
    storage: ExportStorage
    writer: Optional[QuestionWriter] = None

    @property
    def queues(self):
        return [self.generation_queue, self.export_queue]

    def get_writer(self) -> QuestionWriter:
        """The LLM adapter, built on first use (the API never needs it)."""
        if self.writer is None:
            self.writer = QuestionWriter(self.config)
        return self.writer


def build_context(
    app_config: Optional[AppConfig] = None,
    *,
    redis: Optional[Redis] = None,
    sessions: Optional[SessionService] = None,
    questions: Optional[QuestionService] = None,
    writer: Optional[QuestionWriter] = None,
    generation_policy: QueuePolicy = GENERATION_POLICY,
    export_policy: QueuePolicy = EXPORT_POLICY,
) -> AppContext:
    """
    Wire every shared component.

    Anything passed in is used as-is; the rest is built from `app_config`.
    Supabase is only contacted when a database service is first used.
    """
    app_config = app_config or default_config
    redis = redis if redis is not None else create_redis_connection(app_config.REDIS_URL)

    if sessions is None or questions is None:
        client_holder = {}

        def client_factory():
            # One Supabase client shared by both services
            if "client" not in client_holder:
                client_holder["client"] = create_supabase_admin_client(app_config)
            return client_holder["client"]

        sessions = sessions or SessionService(client_factory)
        questions = questions or QuestionService(client_factory)

    return AppContext(
        config=app_config,
        redis=redis,
        sessions=sessions,
        questions=questions,
        cache=ContentCache(redis, ttl_seconds=app_config.CACHE_TTL_SECONDS),
        notifications=NotificationHub(redis),
        analytics=AnalyticsService(redis, sessions, questions),
        generation_queue=JobQueue(redis, generation_policy, app_config.STALL_THRESHOLD_SECONDS),
        export_queue=JobQueue(redis, export_policy, app_config.STALL_THRESHOLD_SECONDS),
        storage=ExportStorage(app_config.EXPORT_DIR),
        writer=writer,
    )
