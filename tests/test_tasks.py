import csv

import pytest

from intervai.errors import NotFoundError, ParseError, QuotaExceededError
from intervai.models import ExportFormat
from intervai.queue.job_queue import JobState
from intervai.queue import tasks
from intervai.queue.payloads import ExportPayload, GenerationPayload, RegenerationPayload
from intervai.queue.tasks import run_job
from intervai.services.cache import ContentCache

from tests.conftest import USER_A
from tests.fakes import FakeWriter


def _payload(session_id, **overrides):
    fields = dict(
        role="Backend Engineer",
        experience="mid-level",
        topics=["python", "databases"],
        session_id=session_id,
        user_id=USER_A,
        cache_key=ContentCache.key("Backend Engineer", "mid-level", ["python", "databases"]),
    )
    fields.update(overrides)
    return GenerationPayload(**fields)


def test_generation_persists_caches_and_notifies(ctx, sessions, questions, drain):
    session = sessions.add(USER_A)
    payload = _payload(session["id"])

    job = ctx.generation_queue.enqueue(payload)
    drain()

    job = ctx.generation_queue.get_job(job.id)
    assert ctx.generation_queue.get_state(job) is JobState.COMPLETED
    assert ctx.generation_queue.get_progress(job) == 100

    result = ctx.generation_queue.get_result(job)
    assert result["success"] is True
    assert result["count"] == 5

    stored = sessions.rows[session["id"]]["question_ids"]
    assert stored == [q["id"] for q in result["questions"]]
    assert len(questions.rows) == 5

    cached = ctx.cache.get(payload.cache_key)
    assert len(cached) == 5
    assert cached[0]["question"] == "What is a Python generator?"

    events = ctx.notifications.list(USER_A)
    assert events[0]["type"] == "job_complete"
    assert events[0]["jobId"] == job.id
    assert events[0]["result"] == {"count": 5}

    assert ctx.analytics.get_daily_count("question_generated") == 1
    trending = {t["topic"] for t in ctx.analytics.get_trending_topics()}
    assert trending == {"python", "databases"}


def test_writer_receives_normalized_parameters(ctx, sessions, writer):
    session = sessions.add(USER_A)
    run_job(_payload(session["id"], experience="senior", topics=["go"]).model_dump(mode="json"))
    assert writer.calls == [("Backend Engineer", "senior", ["go"])]


def test_generation_truncates_to_remaining_quota(ctx, sessions, questions):
    session = sessions.add(USER_A)
    questions.seed(session["id"], ctx.config.MAX_QUESTIONS_PER_SESSION - 2)

    result = run_job(_payload(session["id"]).model_dump(mode="json"))

    assert result["count"] == 2
    assert len(sessions.rows[session["id"]]["question_ids"]) == 2
    # The cache keeps the full generated set
    assert len(ctx.cache.get(_payload(session["id"]).cache_key)) == 5


def test_generation_fails_when_session_is_full(ctx, sessions, questions):
    session = sessions.add(USER_A)
    questions.seed(session["id"], ctx.config.MAX_QUESTIONS_PER_SESSION)

    with pytest.raises(QuotaExceededError) as info:
        run_job(_payload(session["id"]).model_dump(mode="json"))

    assert info.value.extra == {"currentCount": ctx.config.MAX_QUESTIONS_PER_SESSION}
    failed = ctx.notifications.list(USER_A)[0]
    assert failed["type"] == "job_failed"
    assert "questions per session" in failed["error"]


def test_unparseable_response_fails_the_job(ctx, sessions, questions):
    ctx.writer = FakeWriter("I would rather not.")
    session = sessions.add(USER_A)

    with pytest.raises(ParseError):
        run_job(_payload(session["id"]).model_dump(mode="json"))

    assert questions.rows == []
    assert ctx.cache.get(_payload(session["id"]).cache_key) is None


def test_pairs_outside_length_limits_are_dropped(ctx, sessions):
    ctx.writer = FakeWriter(
        '[{"question": "Hi?", "answer": "Too short question."},'
        ' {"question": "What is memoization?", "answer": "Caching function results by argument."}]'
    )
    session = sessions.add(USER_A)

    result = run_job(_payload(session["id"]).model_dump(mode="json"))
    assert result["count"] == 1
    assert result["questions"][0]["question"] == "What is memoization?"


def test_failed_generation_notifies_once_per_attempt(ctx, sessions, drain):
    ctx.writer = FakeWriter(ParseError("Empty AI response"))
    session = sessions.add(USER_A)

    ctx.generation_queue.enqueue(_payload(session["id"]))
    drain()

    events = ctx.notifications.list(USER_A)
    assert len(events) == 3
    assert {e["type"] for e in events} == {"job_failed"}
    assert {e["error"] for e in events} == {"Empty AI response"}


def test_export_renders_csv(ctx, sessions, questions, drain):
    session = sessions.add(USER_A)
    questions.seed(session["id"], 3)

    job = ctx.export_queue.enqueue(ExportPayload(session_id=session["id"], user_id=USER_A, format=ExportFormat.CSV))
    drain()

    job = ctx.export_queue.get_job(job.id)
    result = ctx.export_queue.get_result(job)
    assert result["format"] == "csv"
    assert result["filename"].startswith(f"questions_{session['id']}_")
    assert result["filename"].endswith(".csv")

    path = ctx.storage.path_for(result["filename"])
    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["No.", "Question", "Answer", "Pinned", "Difficulty", "Category", "Created At"]
    assert len(rows) == 4
    assert rows[1][0] == "1"
    assert rows[1][3] == "No"
    assert rows[1][5] == "N/A"

    assert ctx.notifications.list(USER_A)[0]["result"] == result
    assert ctx.analytics.get_daily_count("export_generated") == 1


def test_export_of_missing_session_fails(ctx):
    payload = ExportPayload(session_id="00000000-0000-0000-0000-000000000000", user_id=USER_A, format=ExportFormat.PDF)
    with pytest.raises(NotFoundError, match="Session not found"):
        run_job(payload.model_dump(mode="json"))


def test_failed_render_leaves_no_partial_file(ctx, sessions, questions, drain, monkeypatch):
    session = sessions.add(USER_A)
    questions.seed(session["id"], 2)
    rendered = []

    def half_written(session_row, rows, path):
        with open(path, "w", encoding="utf-8") as f:
            f.write("No.,Question")
        rendered.append(path)
        raise OSError("disk full")

    monkeypatch.setitem(tasks.RENDERERS, ExportFormat.CSV, half_written)
    job = ctx.export_queue.enqueue(ExportPayload(session_id=session["id"], user_id=USER_A, format=ExportFormat.CSV))
    drain()

    job = ctx.export_queue.get_job(job.id)
    assert ctx.export_queue.get_state(job) is JobState.FAILED
    assert ctx.export_queue.get_failure_reason(job) == "disk full"
    # Both attempts wrote a file; neither survives
    assert len(rendered) == 2
    assert list(ctx.storage.root.iterdir()) == []


def _regeneration(session, question_id, **overrides):
    fields = dict(
        question_id=question_id,
        role=session["role"],
        experience=session["experience"],
        topics=session["topics"],
        session_id=session["id"],
        user_id=USER_A,
    )
    fields.update(overrides)
    return RegenerationPayload(**fields)


def test_regeneration_rewrites_one_question(ctx, sessions, questions, writer):
    session = sessions.add(USER_A)
    questions.seed(session["id"], 2)
    target = questions.rows[1]["id"]

    result = run_job(_regeneration(session, target).model_dump(mode="json"))

    assert result["question"]["id"] == target
    assert result["question"]["question"] == "What is a Python generator?"
    assert questions.rows[0]["question"] == "Seeded question 0?"
    assert writer.counts == [1]
    assert writer.calls == [("Backend Engineer", "mid-level", ["python", "databases"])]

    event = ctx.notifications.list(USER_A)[0]
    assert event["type"] == "job_complete"
    assert event["result"] == {"questionId": target}
    assert ctx.analytics.get_daily_count("question_regenerated") == 1


def test_regeneration_of_deleted_question_fails(ctx, sessions, writer):
    session = sessions.add(USER_A)

    with pytest.raises(NotFoundError, match="Question not found"):
        run_job(_regeneration(session, "6f1c8a52-3d0e-4f53-9d55-2f6c2a1f9b10").model_dump(mode="json"))

    assert writer.calls == []


def test_regeneration_keeps_question_when_response_is_unusable(ctx, sessions, questions):
    ctx.writer = FakeWriter('[{"question": "Hi?", "answer": "short"}]')
    session = sessions.add(USER_A)
    questions.seed(session["id"], 1)

    with pytest.raises(ParseError):
        run_job(_regeneration(session, questions.rows[0]["id"]).model_dump(mode="json"))

    assert questions.rows[0]["question"] == "Seeded question 0?"
