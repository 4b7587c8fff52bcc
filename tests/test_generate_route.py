import pytest

from intervai.services.cache import ContentCache

from tests.conftest import USER_A, USER_B
from tests.fakes import FakeWriter

GENERATE = "/api/v1/question/generate"

CACHED_PAIRS = [
    {"question": f"Cached question number {i}?", "answer": f"Cached answer number {i}."}
    for i in range(6)
]


def _body(session_id, **overrides):
    body = {
        "role": "Backend Engineer",
        "experience": "Mid-Level",
        "topicsToFocus": ["python", "databases"],
        "sessionId": session_id,
    }
    body.update(overrides)
    return body


def test_requires_authentication(client, sessions):
    session = sessions.add(USER_A)
    response = client.post(GENERATE, json=_body(session["id"]))
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Authentication required"}


def test_rejects_forged_token(client, sessions):
    session = sessions.add(USER_A)
    client.cookies.set("token", "not-a-jwt")
    response = client.post(GENERATE, json=_body(session["id"]))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


@pytest.mark.parametrize("overrides,field", [
    ({"role": ""}, "role"),
    ({"experience": "wizard"}, "experience"),
    ({"topicsToFocus": []}, "topicsToFocus"),
    ({"topicsToFocus": ["python", "  "]}, "topicsToFocus"),
    ({"sessionId": "not-a-uuid"}, "sessionId"),
])
def test_invalid_body_lists_field_errors(login, sessions, overrides, field):
    client = login(USER_A)
    session = sessions.add(USER_A)

    response = client.post(GENERATE, json=_body(session["id"], **overrides))

    assert response.status_code == 400
    payload = response.json()
    assert payload["success"] is False
    assert payload["message"] == "Validation error"
    assert field in [e["field"] for e in payload["errors"]]


def test_unknown_session_is_404(login):
    client = login(USER_A)
    response = client.post(GENERATE, json=_body("6f1c8a52-3d0e-4f53-9d55-2f6c2a1f9b10"))
    assert response.status_code == 404
    assert response.json()["message"] == "Session not found"


def test_other_users_session_is_403(login, sessions, ctx):
    session = sessions.add(USER_B)
    client = login(USER_A)

    response = client.post(GENERATE, json=_body(session["id"]))

    assert response.status_code == 403
    assert ctx.generation_queue.queue.count == 0


def test_full_session_reports_current_count(login, sessions, questions, ctx):
    session = sessions.add(USER_A)
    questions.seed(session["id"], ctx.config.MAX_QUESTIONS_PER_SESSION)
    client = login(USER_A)

    response = client.post(GENERATE, json=_body(session["id"]))

    assert response.status_code == 400
    payload = response.json()
    assert payload["currentCount"] == ctx.config.MAX_QUESTIONS_PER_SESSION
    assert "maximum number of questions" in payload["message"]


def test_cache_hit_inserts_immediately(login, sessions, questions, ctx, writer):
    session = sessions.add(USER_A)
    key = ContentCache.key("backend engineer", "mid-level", ["Databases", "Python"])
    ctx.cache.set(key, CACHED_PAIRS)
    client = login(USER_A)

    response = client.post(GENERATE, json=_body(session["id"]))

    assert response.status_code == 201
    payload = response.json()
    assert payload["cached"] is True
    assert payload["count"] == 5
    assert [q["question"] for q in payload["data"]["questions"]] == [p["question"] for p in CACHED_PAIRS[:5]]
    assert len(sessions.rows[session["id"]]["question_ids"]) == 5
    assert writer.calls == []
    assert ctx.generation_queue.queue.count == 0


def test_cache_hit_respects_remaining_capacity(login, sessions, questions, ctx):
    session = sessions.add(USER_A)
    questions.seed(session["id"], ctx.config.MAX_QUESTIONS_PER_SESSION - 3)
    ctx.cache.set(ContentCache.key("Backend Engineer", "mid-level", ["python", "databases"]), CACHED_PAIRS)
    client = login(USER_A)

    response = client.post(GENERATE, json=_body(session["id"]))

    assert response.status_code == 201
    assert response.json()["count"] == 3


def test_miss_queues_then_completes_then_hits_cache(login, sessions, ctx, drain, writer):
    session = sessions.add(USER_A)
    client = login(USER_A)

    queued = client.post(GENERATE, json=_body(session["id"]))
    assert queued.status_code == 202
    payload = queued.json()
    assert payload["jobId"] == "gen-1"
    assert payload["checkStatusUrl"] == "/api/v1/queue/question/gen-1"
    assert payload["estimatedTime"] == "30-60 seconds"

    status = client.get("/api/v1/queue/question/gen-1").json()
    assert status == {"success": True, "status": "waiting", "progress": 0}

    drain()

    status = client.get("/api/v1/queue/question/gen-1").json()
    assert status["status"] == "completed"
    assert status["data"]["count"] == 5

    second = client.post(GENERATE, json=_body(session["id"], topicsToFocus=["Databases", "python"]))
    assert second.status_code == 201
    assert second.json()["cached"] is True
    assert len(writer.calls) == 1
    assert len(sessions.rows[session["id"]]["question_ids"]) == 10


def test_failed_job_reports_reason(login, sessions, ctx, drain):
    ctx.writer = FakeWriter("no json here")
    session = sessions.add(USER_A)
    client = login(USER_A)

    job_id = client.post(GENERATE, json=_body(session["id"])).json()["jobId"]
    drain()

    status = client.get(f"/api/v1/queue/question/{job_id}").json()
    assert status == {
        "success": False,
        "status": "failed",
        "error": "Invalid AI response format: no JSON array found",
    }


def test_unknown_job_is_404(login):
    client = login(USER_A)
    assert client.get("/api/v1/queue/question/gen-404").status_code == 404

    response = client.get("/api/v1/queue/export/gen-404")
    assert response.status_code == 404
    assert response.json()["message"] == "Export job not found"


def test_queue_outage_is_503(login, sessions, ctx, monkeypatch):
    from intervai.errors import QueueUnavailableError

    def unavailable(*args, **kwargs):
        raise QueueUnavailableError("Job queue is unavailable, please retry shortly")

    monkeypatch.setattr(ctx.generation_queue, "enqueue", unavailable)
    session = sessions.add(USER_A)
    client = login(USER_A)

    response = client.post(GENERATE, json=_body(session["id"]))
    assert response.status_code == 503
    assert response.json()["success"] is False
