"""
Bulk question routes.

Every operation is all-or-nothing: if any id is malformed, missing or in a
session the caller does not own, nothing is changed.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from intervai.config import config
from intervai.context import AppContext
from intervai.errors import AuthorizationError, NotFoundError, ValidationError
from intervai.models import Difficulty
from intervai.routes.auth import get_app_context, get_current_user_id
from intervai.utils.logging import api_logger as logger


router = APIRouter(prefix=f"{config.API_BASE_PATH}/bulk", tags=["bulk"])


class BulkDeleteRequest(BaseModel):
    questionIds: List[str] = []


class BulkDifficultyRequest(BaseModel):
    questionIds: List[str] = []
    difficulty: Optional[str] = None


class BulkPinRequest(BaseModel):
    questionIds: List[str] = []
    # Checked by hand so "true" or 1 are rejected instead of coerced
    isPinned: Any = None


async def _load_owned_questions(
    ctx: AppContext,
    question_ids: List[str],
    user_id: str,
    denied_message: str
) -> List[Dict[str, Any]]:
    """
    Rows for every requested id, after checking they all belong to the caller.

    Raises:
        ValidationError: Empty list or malformed ids
        NotFoundError: Some ids do not exist
        AuthorizationError: Some questions are in another user's session
    """
    if not question_ids:
        raise ValidationError("questionIds array is required")

    ids = list(dict.fromkeys(q.strip().lower() for q in question_ids))
    invalid = [q for q in ids if not _is_uuid(q)]
    if invalid:
        raise ValidationError("Invalid question IDs found", extra={"invalidIds": invalid})

    rows = await ctx.questions.get_many(ids)
    found = {row["id"] for row in rows}
    missing = [q for q in ids if q not in found]
    if missing:
        raise NotFoundError("Some questions were not found", extra={"missingIds": missing})

    owned = set(await ctx.sessions.get_user_session_ids(user_id))
    if any(row["session_id"] not in owned for row in rows):
        raise AuthorizationError(denied_message)
    return rows


def _is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except ValueError:
        return False
    return True


@router.post("/delete")
async def bulk_delete(
    body: BulkDeleteRequest,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Delete several questions and drop them from their sessions' lists."""
    rows = await _load_owned_questions(
        ctx, body.questionIds, user_id,
        "Unauthorized to delete some questions"
    )
    ids = [row["id"] for row in rows]
    deleted = await ctx.questions.delete_many(ids)

    by_session: Dict[str, List[str]] = {}
    for row in rows:
        by_session.setdefault(row["session_id"], []).append(row["id"])
    for session_id, session_question_ids in by_session.items():
        await ctx.sessions.remove_questions(session_id, session_question_ids)

    logger.info("Bulk deleted questions", user_id=user_id, count=deleted, sessions=len(by_session))
    return {
        "success": True,
        "message": f"Successfully deleted {deleted} questions",
        "deletedCount": deleted,
    }


@router.post("/difficulty")
async def bulk_update_difficulty(
    body: BulkDifficultyRequest,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    if body.difficulty not in {d.value for d in Difficulty}:
        raise ValidationError("Invalid difficulty. Use: easy, medium, or hard")

    rows = await _load_owned_questions(
        ctx, body.questionIds, user_id,
        "Unauthorized to update some questions"
    )
    modified = await ctx.questions.update_many(
        [row["id"] for row in rows],
        {"difficulty": body.difficulty}
    )

    return {
        "success": True,
        "message": f"Successfully updated {modified} questions",
        "modifiedCount": modified,
    }


@router.post("/toggle-pin")
async def bulk_toggle_pin(
    body: BulkPinRequest,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Pin or unpin several questions at once."""
    if not isinstance(body.isPinned, bool):
        raise ValidationError("isPinned must be a boolean")

    rows = await _load_owned_questions(
        ctx, body.questionIds, user_id,
        "Unauthorized to update some questions"
    )
    modified = await ctx.questions.update_many(
        [row["id"] for row in rows],
        {"is_pinned": body.isPinned}
    )

    action = "pinned" if body.isPinned else "unpinned"
    return {
        "success": True,
        "message": f"Successfully {action} {modified} questions",
        "modifiedCount": modified,
    }
