"""
Job status polling routes.
"""

from fastapi import APIRouter, Depends

from intervai.config import config
from intervai.context import AppContext
from intervai.queue.status import job_status_payload
from intervai.routes.auth import get_app_context, get_current_user_id
from intervai.routes.exports import export_completed_view


router = APIRouter(prefix=f"{config.API_BASE_PATH}/queue", tags=["queue"])


@router.get("/question/{job_id}")
async def get_question_job_status(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Status of a question generation job."""
    return job_status_payload(ctx.generation_queue, job_id, user_id)


@router.get("/export/{job_id}")
async def get_export_job_status(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Status of an export job."""
    return job_status_payload(
        ctx.export_queue,
        job_id,
        user_id,
        completed_view=export_completed_view,
        not_found_message="Export job not found"
    )
