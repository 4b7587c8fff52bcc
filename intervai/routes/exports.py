"""
Export API Routes

Queue an export of a session's questions, poll it, and download the file
once. Downloaded files are deleted after the response is sent.
"""

import os
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse, JSONResponse
from starlette.background import BackgroundTask

from intervai.config import config
from intervai.context import AppContext
from intervai.errors import AuthorizationError, NotFoundError, ValidationError
from intervai.models import ExportFormat
from intervai.queue.payloads import ExportPayload
from intervai.queue.status import job_status_payload
from intervai.routes.auth import get_app_context, ensure_uuid, get_current_user_id, load_owned_session
from intervai.utils.logging import export_logger as logger


router = APIRouter(prefix=f"{config.API_BASE_PATH}/export", tags=["export"])

MEDIA_TYPES = {
    "pdf": "application/pdf",
    "csv": "text/csv",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def export_completed_view(result: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Completed export payload: where to download the file."""
    result = result or {}
    return {
        "data": result,
        "downloadUrl": f"{config.API_BASE_PATH}/export/download/{result.get('filename', '')}",
    }


def _remove_file(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Failed to delete downloaded export", path=path, error=str(e))


@router.post("/export/{session_id}")
async def export_questions(
    session_id: str,
    format: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Queue an export of a session's questions as PDF, CSV or DOCX."""
    try:
        export_format = ExportFormat((format or "").strip().lower())
    except ValueError:
        raise ValidationError("Invalid format. Use pdf, csv, or docx")

    session = await load_owned_session(ctx, session_id, user_id)

    job = ctx.export_queue.enqueue(ExportPayload(
        session_id=session["id"],
        user_id=user_id,
        format=export_format,
    ))

    return JSONResponse(status_code=202, content={
        "success": True,
        "message": "Export queued successfully",
        "jobId": job.id,
        "checkStatusUrl": f"{ctx.config.API_BASE_PATH}/export/status/{job.id}",
    })


@router.get("/status/{job_id}")
async def get_export_status(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    return job_status_payload(
        ctx.export_queue,
        job_id,
        user_id,
        completed_view=export_completed_view,
        not_found_message="Export job not found"
    )


@router.get("/download/{filename}")
async def download_export(
    filename: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_app_context)
):
    """Download a rendered export. The file is removed once sent."""
    storage = ctx.storage
    if not storage.is_safe_filename(filename):
        raise ValidationError("Invalid filename")

    session_id = storage.session_id_from_filename(filename)
    if session_id is None:
        raise ValidationError("Invalid filename")

    session = await ctx.sessions.get_by_id(ensure_uuid(session_id))
    if not session or str(session.get("user_id")) != user_id:
        raise AuthorizationError("Unauthorized access")

    path = storage.path_for(filename)
    if not path.is_file():
        raise NotFoundError("File not found")

    extension = filename.rsplit(".", 1)[-1]
    return FileResponse(
        str(path),
        filename=filename,
        media_type=MEDIA_TYPES.get(extension, "application/octet-stream"),
        background=BackgroundTask(_remove_file, str(path)),
    )
