"""Shared fixtures: fakeredis-backed context, in-memory stores, API client."""

from dataclasses import replace

import fakeredis
import pytest
from fastapi.testclient import TestClient
from rq import SimpleWorker

from intervai.api.main import create_app
from intervai.config import AppConfig
from intervai.context import build_context
from intervai.queue.job_queue import EXPORT_POLICY, GENERATION_POLICY
from intervai.queue.tasks import set_worker_context
from intervai.routes.auth import issue_token
from intervai.utils.logging import get_log_buffer

from tests.fakes import FakeWriter, InMemoryQuestionService, InMemorySessionService

JWT_SECRET = "test-secret"
ADMIN_KEY = "test-admin-key"
USER_A = "user-a"
USER_B = "user-b"


# Force anyio to use asyncio
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def redis():
    return fakeredis.FakeRedis()


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        _env_file=None,
        REDIS_URL="redis://localhost:6379/15",
        JWT_SECRET=JWT_SECRET,
        ADMIN_API_KEY=ADMIN_KEY,
        EXPORT_DIR=str(tmp_path / "exports"),
        ENVIRONMENT="test",
    )


@pytest.fixture
def writer():
    return FakeWriter()


@pytest.fixture
def sessions():
    return InMemorySessionService()


@pytest.fixture
def questions():
    return InMemoryQuestionService()


@pytest.fixture
def ctx(app_config, redis, sessions, questions, writer):
    """Context with retries that requeue immediately so burst workers finish."""
    context = build_context(
        app_config,
        redis=redis,
        sessions=sessions,
        questions=questions,
        writer=writer,
        generation_policy=replace(GENERATION_POLICY, backoff_intervals=[0, 0]),
        export_policy=replace(EXPORT_POLICY, backoff_intervals=[0]),
    )
    set_worker_context(context)
    get_log_buffer().clear()
    yield context
    set_worker_context(None)


@pytest.fixture
def client(ctx):
    with TestClient(create_app(ctx)) as c:
        yield c


@pytest.fixture
def login(client):
    """Switch the client's session cookie to the given user."""
    def _login(user_id: str):
        client.cookies.set("token", issue_token(user_id, JWT_SECRET))
        return client
    return _login


@pytest.fixture
def drain(ctx):
    """Run every queued job (including immediate retries) in-process."""
    def _drain():
        worker = SimpleWorker([q.queue for q in ctx.queues], connection=ctx.redis)
        worker.work(burst=True)
    return _drain
