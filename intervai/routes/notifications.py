"""
Notification history routes.
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from intervai.config import config
from intervai.context import AppContext
from intervai.errors import ValidationError
from intervai.routes.auth import get_app_context, get_current_user_id


router = APIRouter(prefix=f"{config.API_BASE_PATH}/notifications", tags=["notifications"])


class MarkReadRequest(BaseModel):
    notificationIds: List[str] = []


@router.get("")
async def get_notifications(
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """The caller's most recent notifications, newest first."""
    notifications = ctx.notifications.list(user_id, limit=limit)
    return {
        "success": True,
        "message": "Notifications retrieved successfully",
        "count": len(notifications),
        "data": {"notifications": notifications},
    }


@router.post("/read")
async def mark_notifications_read(
    body: MarkReadRequest,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    if not body.notificationIds:
        raise ValidationError("notificationIds array is required")

    ctx.notifications.mark_read(user_id, body.notificationIds)
    return {
        "success": True,
        "message": "Notifications marked as read",
    }


@router.delete("/clear")
async def clear_notifications(
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    ctx.notifications.clear(user_id)
    return {
        "success": True,
        "message": "All notifications cleared",
    }
