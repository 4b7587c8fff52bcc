"""
Admin API Routes

Operational endpoints guarded by X-Admin-Key:
- Content cache busting
- Job queue status
- Recent log entries
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from intervai.config import config
from intervai.context import AppContext
from intervai.errors import ValidationError
from intervai.routes.auth import get_app_context, require_admin
from intervai.utils.logging import LogLevel, get_log_buffer, get_logger

router = APIRouter(
    prefix=f"{config.API_BASE_PATH}/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)]
)
logger = get_logger("admin")


# ===== Cache =====

@router.delete("/cache")
async def invalidate_cache(
    prefix: str = Query(default="", max_length=64),
    ctx: AppContext = Depends(get_app_context)
):
    """Delete cached generation results whose key starts with `prefix` (all when empty)."""
    deleted = ctx.cache.invalidate(prefix)
    logger.info("Admin cache invalidation", prefix=prefix or "*", deleted=deleted)
    return {
        "success": True,
        "message": f"Invalidated {deleted} cache entries",
        "deleted": deleted,
    }


# ===== Jobs =====

@router.get("/queues")
async def get_queue_stats(ctx: AppContext = Depends(get_app_context)):
    """Registry sizes of both job queues."""
    return {
        "success": True,
        "data": {q.name: q.counts() for q in ctx.queues},
    }


# ===== Logs =====

@router.get("/logs")
async def get_logs(
    limit: int = Query(100, ge=1, le=500),
    level: Optional[str] = Query(None, description="Filter by level (debug, info, warning, error, critical)"),
    source: Optional[str] = Query(None, description="Filter by source")
):
    """Get recent log entries from the in-memory buffer."""
    log_buffer = get_log_buffer()

    level_filter = None
    if level:
        try:
            level_filter = LogLevel(level.lower())
        except ValueError:
            raise ValidationError(f"Invalid log level: {level}")

    return {
        "logs": log_buffer.get_recent(limit=limit, level=level_filter, source=source),
        "stats": log_buffer.get_stats(),
    }
