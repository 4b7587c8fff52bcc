"""
Questions API Routes

Generation requests (answered from the content cache or queued), custom
questions, pinned lists and counts, and the per-question
edit/pin/regenerate/delete operations.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from intervai.config import config
from intervai.context import AppContext
from intervai.errors import AuthorizationError, NotFoundError, QuotaExceededError, ValidationError
from intervai.models import (
    ANSWER_MAX_LENGTH,
    ANSWER_MIN_LENGTH,
    QUESTION_MAX_LENGTH,
    QUESTION_MIN_LENGTH,
    Difficulty,
    ExperienceLevel,
    QuestionCreate,
    QuestionUpdate,
)
from intervai.queue.payloads import GenerationPayload, RegenerationPayload
from intervai.routes.auth import ensure_uuid, get_app_context, get_current_user_id, load_owned_session
from intervai.services.cache import ContentCache
from intervai.utils.logging import api_logger as logger


router = APIRouter(prefix=f"{config.API_BASE_PATH}/question", tags=["questions"])

ESTIMATED_GENERATION_TIME = "30-60 seconds"


# =============================================================================
# Request Models
# =============================================================================

class GenerateQuestionsRequest(BaseModel):
    """Request to generate questions for a session."""
    role: str = Field(min_length=1, max_length=200)
    experience: ExperienceLevel
    topicsToFocus: List[str] = Field(min_length=1, max_length=20)
    sessionId: UUID

    @field_validator("role", mode="before")
    @classmethod
    def strip_role(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("experience", mode="before")
    @classmethod
    def normalize_experience(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("topicsToFocus")
    @classmethod
    def topics_not_blank(cls, v: List[str]) -> List[str]:
        topics = [t.strip() for t in v]
        if any(not t for t in topics):
            raise ValueError("All topics must be non-empty strings")
        return topics


class CustomQuestionRequest(BaseModel):
    """Request to add a hand-written question."""
    sessionId: UUID
    question: str = Field(min_length=QUESTION_MIN_LENGTH, max_length=QUESTION_MAX_LENGTH)
    answer: str = Field(min_length=ANSWER_MIN_LENGTH, max_length=ANSWER_MAX_LENGTH)
    difficulty: Difficulty = Difficulty.MEDIUM
    category: str = Field(default="", max_length=100)
    notes: str = Field(default="", max_length=1000)

    @field_validator("question", "answer", "category", "notes", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


# =============================================================================
# Helpers
# =============================================================================

async def _check_quota(ctx: AppContext, session_id: str) -> int:
    """Current question count; raises when the session is full."""
    count = await ctx.questions.count_for_session(session_id)
    limit = ctx.config.MAX_QUESTIONS_PER_SESSION
    if count >= limit:
        raise QuotaExceededError(
            f"Session has reached maximum number of questions ({limit})",
            extra={"currentCount": count}
        )
    return count


def _cached_items(cached: List[Dict[str, Any]], limit: int) -> List[QuestionCreate]:
    items = []
    for pair in cached[:limit]:
        try:
            items.append(QuestionCreate(question=pair.get("question"), answer=pair.get("answer")))
        except (PydanticValidationError, AttributeError):
            continue
    return items


async def _load_owned_question(
    ctx: AppContext,
    question_id: str,
    user_id: str,
    denied_message: str
) -> Dict[str, Any]:
    question = await ctx.questions.get_by_id(ensure_uuid(question_id, "question ID"))
    if not question:
        raise NotFoundError("Question not found")

    session = await ctx.sessions.get_by_id(question["session_id"])
    if not session or str(session.get("user_id")) != user_id:
        raise AuthorizationError(denied_message)
    return question


# =============================================================================
# Generation
# =============================================================================

@router.post("/generate")
async def generate_questions(
    body: GenerateQuestionsRequest,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """
    Generate interview questions for a session.

    Answers 201 with the questions when an identical request was generated
    recently (cache hit), otherwise 202 with a job id to poll.
    """
    session_id = str(body.sessionId)
    await load_owned_session(
        ctx, session_id, user_id,
        "You don't have permission to generate questions for this session"
    )
    count = await _check_quota(ctx, session_id)

    cache_key = ContentCache.key(body.role, body.experience.value, body.topicsToFocus)
    cached = ctx.cache.get(cache_key)

    if cached:
        capacity = ctx.config.MAX_QUESTIONS_PER_SESSION - count
        items = _cached_items(cached, ctx.config.QUESTIONS_PER_GENERATION)[:capacity]
        if items:
            rows = await ctx.questions.create_many(session_id, items)
            await ctx.sessions.append_questions(session_id, [row["id"] for row in rows])
            logger.info("Served generation from cache", session_id=session_id, count=len(rows))
            return JSONResponse(status_code=201, content={
                "success": True,
                "message": f"Successfully generated {len(rows)} questions (from cache)",
                "count": len(rows),
                "cached": True,
                "data": {"questions": rows},
            })

    job = ctx.generation_queue.enqueue(GenerationPayload(
        role=body.role,
        experience=body.experience,
        topics=body.topicsToFocus,
        session_id=session_id,
        user_id=user_id,
        cache_key=cache_key,
    ))

    return JSONResponse(status_code=202, content={
        "success": True,
        "message": "Question generation queued. Check status using job ID",
        "jobId": job.id,
        "checkStatusUrl": f"{ctx.config.API_BASE_PATH}/queue/question/{job.id}",
        "estimatedTime": ESTIMATED_GENERATION_TIME,
    })


# =============================================================================
# Custom Questions & Queries
# =============================================================================

@router.post("/custom", status_code=201)
async def add_custom_question(
    body: CustomQuestionRequest,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Add a hand-written question to a session."""
    session_id = str(body.sessionId)
    await load_owned_session(
        ctx, session_id, user_id,
        "You don't have permission to add questions to this session"
    )
    await _check_quota(ctx, session_id)

    row = await ctx.questions.create(session_id, QuestionCreate(
        question=body.question,
        answer=body.answer,
        difficulty=body.difficulty,
        category=body.category,
        notes=body.notes,
    ))
    await ctx.sessions.append_questions(session_id, [row["id"]])

    return {
        "success": True,
        "message": "Question added successfully",
        "data": {"question": row},
    }


@router.get("/session/{session_id}")
async def get_session_questions(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """All questions of a session, pinned first."""
    session = await load_owned_session(
        ctx, session_id, user_id,
        "You don't have permission to view these questions"
    )
    questions = await ctx.questions.list_for_session(session["id"])

    return {
        "success": True,
        "message": "Questions retrieved successfully",
        "count": len(questions),
        "data": {"questions": questions},
    }


@router.get("/search")
async def search_questions(
    q: Optional[str] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Search question and answer text across the caller's sessions."""
    if not q or not q.strip():
        raise ValidationError("Please provide a search query (q parameter)")

    session_ids = await ctx.sessions.get_user_session_ids(user_id)
    questions = await ctx.questions.search(session_ids, q.strip(), limit=limit)

    return {
        "success": True,
        "message": "Search completed successfully",
        "count": len(questions),
        "data": {"questions": questions},
    }


@router.get("/session/{session_id}/pinned")
async def get_pinned_questions(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Pinned questions of a session, newest first."""
    session = await load_owned_session(
        ctx, session_id, user_id,
        "You don't have permission to view these questions"
    )
    questions = await ctx.questions.list_pinned(session["id"])

    return {
        "success": True,
        "message": "Pinned questions retrieved successfully",
        "count": len(questions),
        "data": {"questions": questions},
    }


@router.get("/session/{session_id}/stats")
async def get_question_stats(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    session = await load_owned_session(
        ctx, session_id, user_id,
        "You don't have permission to view these statistics"
    )
    total = await ctx.questions.count_for_session(session["id"])
    pinned = await ctx.questions.count_pinned(session["id"])

    return {
        "success": True,
        "message": "Statistics retrieved successfully",
        "data": {
            "stats": {"total": total, "pinned": pinned, "unpinned": total - pinned},
            "session": {
                "role": session.get("role"),
                "experience": session.get("experience"),
                "topics": session.get("topics") or [],
            },
        },
    }


# =============================================================================
# Single Question Routes
# =============================================================================

@router.get("/{question_id}")
async def get_question(
    question_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    question = await _load_owned_question(
        ctx, question_id, user_id,
        "You don't have permission to view this question"
    )
    return {
        "success": True,
        "message": "Question retrieved successfully",
        "data": {"question": question},
    }


@router.put("/{question_id}")
async def update_question(
    question_id: str,
    body: QuestionUpdate,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Edit question text, answer, difficulty, category or notes."""
    question = await _load_owned_question(
        ctx, question_id, user_id,
        "You don't have permission to update this question"
    )
    updated = await ctx.questions.update(question["id"], body)

    return {
        "success": True,
        "message": "Question updated successfully",
        "data": {"question": updated},
    }


@router.patch("/{question_id}/toggle-pin")
async def toggle_pin(
    question_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    question = await _load_owned_question(
        ctx, question_id, user_id,
        "You don't have permission to modify this question"
    )
    pinned = not question.get("is_pinned", False)
    updated = await ctx.questions.set_pinned(question["id"], pinned)

    return {
        "success": True,
        "message": "Question pinned" if pinned else "Question unpinned",
        "data": {"question": updated},
    }


@router.post("/{question_id}/regenerate")
async def regenerate_question(
    question_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """
    Queue a rewrite of one question from its session's role, experience
    and topics. Answers 202 with a job id to poll.
    """
    question = await _load_owned_question(
        ctx, question_id, user_id,
        "You don't have permission to regenerate this question"
    )
    session = await ctx.sessions.get_by_id(question["session_id"])
    topics = [t for t in (session.get("topics") or []) if t and t.strip()]
    try:
        experience = ExperienceLevel(session.get("experience"))
    except ValueError:
        experience = None
    if not session.get("role") or experience is None or not topics:
        raise ValidationError("Session is missing required fields")

    job = ctx.generation_queue.enqueue(RegenerationPayload(
        question_id=question["id"],
        role=session["role"],
        experience=experience,
        topics=topics,
        session_id=question["session_id"],
        user_id=user_id,
    ))

    return JSONResponse(status_code=202, content={
        "success": True,
        "message": "Question regeneration queued. Check status using job ID",
        "jobId": job.id,
        "checkStatusUrl": f"{ctx.config.API_BASE_PATH}/queue/question/{job.id}",
        "estimatedTime": ESTIMATED_GENERATION_TIME,
    })


@router.delete("/{question_id}")
async def delete_question(
    question_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Delete a question and drop it from its session's list."""
    question = await _load_owned_question(
        ctx, question_id, user_id,
        "You don't have permission to delete this question"
    )
    await ctx.questions.delete(question["id"])
    await ctx.sessions.remove_question(question["session_id"], question["id"])

    return {
        "success": True,
        "message": "Question deleted successfully",
    }
