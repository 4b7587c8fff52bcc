"""
RQ task definitions for INTERVAI.

`run_job` is the single entrypoint for both queues. It runs in the worker
process, parses the tagged payload and hands it to the matching handler.
Handlers re-raise every error so RQ's retry policy applies.
"""

import asyncio
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from rq import get_current_job
from rq.job import Job

from intervai.agents.parsing import parse_question_pairs
from intervai.context import AppContext, build_context
from intervai.errors import NotFoundError, ParseError, QuotaExceededError
from intervai.export.renderers import RENDERERS
from intervai.models import QuestionCreate, QuestionUpdate
from intervai.queue.job_queue import JobQueue, QUEUE_EXPORT, QUEUE_GENERATION
from intervai.queue.payloads import ExportPayload, GenerationPayload, RegenerationPayload, parse_payload
from intervai.utils.best_effort import best_effort
from intervai.utils.logging import worker_logger as logger


# =============================================================================
# WORKER CONTEXT
# =============================================================================

_context: Optional[AppContext] = None


def set_worker_context(ctx: Optional[AppContext]) -> None:
    """Install the context built by the worker launcher."""
    global _context
    _context = ctx


def get_worker_context() -> AppContext:
    """The worker's context, built from configuration on first use."""
    global _context
    if _context is None:
        _context = build_context()
    return _context


def _progress(job: Optional[Job], value: int) -> None:
    if job is not None:
        JobQueue.report_progress(job, value)


def _record_attempt(job: Optional[Job]) -> int:
    if job is None:
        return 1
    attempts = int(job.meta.get("attempts_made", 0)) + 1
    job.meta["attempts_made"] = attempts
    job.save_meta()
    return attempts


def _record_failure(job: Optional[Job], reason: str) -> None:
    if job is not None:
        job.meta["failure_reason"] = reason
        job.save_meta()


# =============================================================================
# ENTRYPOINT
# =============================================================================

def run_job(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    RQ task shared by the generation and export queues.

    Args:
        payload: Serialized GenerationPayload, RegenerationPayload or ExportPayload

    Returns:
        Handler result (stored by RQ as the job's return value)
    """
    job = get_current_job()
    ctx = get_worker_context()
    parsed = parse_payload(payload)

    if isinstance(parsed, GenerationPayload):
        job_type, handler = QUEUE_GENERATION, _generate_questions_async
    elif isinstance(parsed, RegenerationPayload):
        job_type, handler = QUEUE_GENERATION, _regenerate_question_async
    elif isinstance(parsed, ExportPayload):
        job_type, handler = QUEUE_EXPORT, _export_questions_async
    else:
        raise TypeError(f"Unhandled payload kind: {type(parsed).__name__}")

    job_id = job.id if job is not None else "local"
    attempt = _record_attempt(job)
    logger.info("Job started", job_id=job_id, kind=parsed.kind, attempt=attempt)

    try:
        # Run async code in sync context (RQ workers are sync)
        result = asyncio.run(handler(ctx, job, job_id, parsed))
    except Exception as e:
        reason = str(e) or type(e).__name__
        _record_failure(job, reason)
        logger.error(
            "Job failed",
            job_id=job_id,
            kind=parsed.kind,
            attempt=attempt,
            error=reason,
            error_type=type(e).__name__
        )
        ctx.notifications.notify_job_failed(parsed.user_id, job_type, job_id, reason)
        raise

    logger.info("Job completed", job_id=job_id, kind=parsed.kind, attempt=attempt)
    return result


# =============================================================================
# QUESTION GENERATION
# =============================================================================

def _validated_items(pairs: List[Dict[str, str]]) -> List[QuestionCreate]:
    """Pairs that satisfy the stored length limits; the rest are dropped."""
    items = []
    for pair in pairs:
        try:
            items.append(QuestionCreate(question=pair["question"], answer=pair["answer"]))
        except PydanticValidationError:
            logger.warning("Dropping generated pair outside length limits", question=pair["question"][:80])
    return items


async def _generate_questions_async(
    ctx: AppContext,
    job: Optional[Job],
    job_id: str,
    payload: GenerationPayload
) -> Dict[str, Any]:
    """Async implementation of question generation."""
    limit = ctx.config.QUESTIONS_PER_GENERATION
    _progress(job, 10)

    writer = ctx.get_writer()
    _progress(job, 30)

    raw = await writer.write(payload.role, payload.experience.value, payload.topics)
    _progress(job, 60)

    pairs = parse_question_pairs(raw, limit=limit)
    items = _validated_items(pairs)
    if not items:
        raise ParseError("No valid questions generated")
    _progress(job, 80)

    # Re-check the quota; other jobs may have filled the session meanwhile
    current = await ctx.questions.count_for_session(payload.session_id)
    remaining = ctx.config.MAX_QUESTIONS_PER_SESSION - current
    if remaining <= 0:
        raise QuotaExceededError(
            f"Maximum {ctx.config.MAX_QUESTIONS_PER_SESSION} questions per session reached",
            extra={"currentCount": current}
        )

    rows = await ctx.questions.create_many(payload.session_id, items[:remaining])
    await ctx.sessions.append_questions(payload.session_id, [row["id"] for row in rows])

    ctx.cache.set(
        payload.cache_key,
        [{"question": item.question, "answer": item.answer} for item in items]
    )

    best_effort(
        "track question_generated",
        ctx.analytics.track_activity,
        payload.user_id,
        "question_generated",
        sessionId=payload.session_id,
        count=len(rows),
        role=payload.role,
        experience=payload.experience.value,
    )
    best_effort("topic popularity", ctx.analytics.increment_topic_popularity, payload.topics)

    ctx.notifications.notify_job_complete(
        payload.user_id,
        QUEUE_GENERATION,
        job_id,
        {"count": len(rows)}
    )
    _progress(job, 100)

    return {"success": True, "count": len(rows), "questions": rows}


async def _regenerate_question_async(
    ctx: AppContext,
    job: Optional[Job],
    job_id: str,
    payload: RegenerationPayload
) -> Dict[str, Any]:
    """Replace one question's text and answer with a freshly written pair."""
    _progress(job, 10)

    if not await ctx.questions.get_by_id(payload.question_id):
        raise NotFoundError("Question not found")

    writer = ctx.get_writer()
    _progress(job, 30)

    raw = await writer.write(payload.role, payload.experience.value, payload.topics, count=1)
    _progress(job, 60)

    items = _validated_items(parse_question_pairs(raw))
    if not items:
        raise ParseError("AI did not return a valid question and answer")
    _progress(job, 80)

    row = await ctx.questions.update(
        payload.question_id,
        QuestionUpdate(question=items[0].question, answer=items[0].answer)
    )
    if row is None:
        # Deleted while the model was writing
        raise NotFoundError("Question not found")

    best_effort(
        "track question_regenerated",
        ctx.analytics.track_activity,
        payload.user_id,
        "question_regenerated",
        sessionId=payload.session_id,
        questionId=payload.question_id,
    )

    ctx.notifications.notify_job_complete(
        payload.user_id,
        QUEUE_GENERATION,
        job_id,
        {"questionId": payload.question_id}
    )
    _progress(job, 100)

    return {"success": True, "question": row}


# =============================================================================
# EXPORT
# =============================================================================

async def _export_questions_async(
    ctx: AppContext,
    job: Optional[Job],
    job_id: str,
    payload: ExportPayload
) -> Dict[str, Any]:
    """Async implementation of export rendering."""
    _progress(job, 10)

    session = await ctx.sessions.get_by_id(payload.session_id)
    if not session:
        raise NotFoundError("Session not found")

    questions = await ctx.questions.list_for_session(payload.session_id)
    if not questions:
        raise NotFoundError("No questions found for export")
    _progress(job, 40)

    ctx.storage.ensure_dir()
    filename = ctx.storage.make_filename(payload.session_id, payload.format)
    path = ctx.storage.path_for(filename)
    try:
        RENDERERS[payload.format](session, questions, str(path))
    except Exception:
        # Drop the partial file; a retry renders under a new name
        path.unlink(missing_ok=True)
        raise
    _progress(job, 100)

    result = {"filename": filename, "format": payload.format.value}

    best_effort(
        "track export_generated",
        ctx.analytics.track_activity,
        payload.user_id,
        "export_generated",
        sessionId=payload.session_id,
        format=payload.format.value,
    )
    ctx.notifications.notify_job_complete(payload.user_id, QUEUE_EXPORT, job_id, result)

    return result
