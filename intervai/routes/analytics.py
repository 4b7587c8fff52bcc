"""
Analytics API Routes
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from intervai.config import config
from intervai.context import AppContext
from intervai.errors import ValidationError
from intervai.routes.auth import get_app_context, get_current_user_id, load_owned_session, require_admin
from intervai.services.analytics import ACTIVITY_TYPES, today_utc


router = APIRouter(prefix=f"{config.API_BASE_PATH}/analytics", tags=["analytics"])


@router.get("/trending")
async def get_trending_topics(
    limit: int = Query(default=10, ge=1, le=50),
    ctx: AppContext = Depends(get_app_context)
):
    """Most requested generation topics over the last week."""
    topics = ctx.analytics.get_trending_topics(limit)
    return {
        "success": True,
        "message": "Trending topics retrieved successfully",
        "count": len(topics),
        "data": {"topics": topics},
    }


@router.get("/user")
async def get_user_analytics(
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    stats = await ctx.analytics.get_user_stats(user_id)
    return {
        "success": True,
        "message": "User analytics retrieved successfully",
        "data": stats,
    }


@router.get("/session/{session_id}")
async def get_session_analytics(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Difficulty breakdown, pinned count and answer length for one session."""
    session = await load_owned_session(ctx, session_id, user_id)
    analytics = await ctx.analytics.get_session_analytics(session["id"])
    return {
        "success": True,
        "message": "Session analytics retrieved successfully",
        "data": analytics,
    }


@router.get("/daily", dependencies=[Depends(require_admin)])
async def get_daily_activity(
    type: str = Query(...),
    day: Optional[str] = Query(default=None),
    ctx: AppContext = Depends(get_app_context)
):
    """Global count of one activity type for a UTC day (default today). Admin only."""
    if type not in ACTIVITY_TYPES:
        raise ValidationError(f"Invalid activity type. Use one of: {', '.join(ACTIVITY_TYPES)}")

    if day is not None:
        try:
            datetime.strptime(day, "%Y-%m-%d")
        except ValueError:
            raise ValidationError("day must be formatted as YYYY-MM-DD")
    day = day or today_utc()

    return {
        "success": True,
        "message": "Daily activity retrieved successfully",
        "data": {
            "type": type,
            "day": day,
            "count": ctx.analytics.get_daily_count(type, day),
        },
    }
