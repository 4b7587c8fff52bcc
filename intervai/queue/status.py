"""
Translate a queue job into the payload the polling endpoints return.
"""

from typing import Any, Callable, Dict, Optional

from intervai.errors import AuthorizationError, NotFoundError
from intervai.queue.job_queue import JobQueue, JobState


def job_status_payload(
    queue: JobQueue,
    job_id: str,
    user_id: str,
    *,
    completed_view: Optional[Callable[[Any], Dict[str, Any]]] = None,
    not_found_message: str = "Job not found"
) -> Dict[str, Any]:
    """
    Status payload for `job_id` as seen by `user_id`.

    Ownership is checked before anything about the job's state is revealed.

    Args:
        queue: Queue the job must belong to
        job_id: Job identifier from the client
        user_id: Authenticated caller
        completed_view: Builds the completed payload's extra fields from the
            job result (defaults to `{"data": result}`)

    Raises:
        NotFoundError: No such job in this queue
        AuthorizationError: The job belongs to another user
    """
    job = queue.get_job(job_id)
    if job is None:
        raise NotFoundError(not_found_message)

    if queue.owner_of(job) != user_id:
        raise AuthorizationError("Unauthorized access")

    state = queue.get_state(job)

    if state is JobState.COMPLETED:
        result = queue.get_result(job)
        extra = completed_view(result) if completed_view else {"data": result}
        return {"success": True, "status": state.value, **extra}

    if state is JobState.FAILED:
        return {
            "success": False,
            "status": state.value,
            "error": queue.get_failure_reason(job) or "Job failed",
        }

    return {
        "success": True,
        "status": state.value,
        "progress": queue.get_progress(job),
    }
