"""
Durable, retryable job queues on RQ.

Two instances exist: question generation and export rendering. Each wraps
an rq.Queue with its own policy (worker concurrency, attempt budget,
backoff, timeout and retention) and translates RQ's job status into the
states the polling endpoints report.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue, Retry
from rq.exceptions import NoSuchJobError
from rq.job import Job, JobStatus

from intervai.errors import QueueUnavailableError
from intervai.queue.payloads import ExportPayload, GenerationPayload, RegenerationPayload
from intervai.utils.logging import queue_logger as logger

QUEUE_GENERATION = "question-generation"
QUEUE_EXPORT = "export-generation"

# Shared entrypoint for both queues
TASK_ENTRYPOINT = "intervai.queue.tasks.run_job"


class JobState(str, Enum):
    """Client-facing job state."""
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    DELAYED = "delayed"
    STALLED = "stalled"


@dataclass(frozen=True)
class QueuePolicy:
    """Per-queue behavior."""
    name: str
    id_prefix: str
    concurrency: int
    attempts: int
    backoff_intervals: List[int] = field(default_factory=list)
    timeout_seconds: int = 60
    result_ttl_seconds: int = 3600
    failure_ttl_seconds: int = 86400

    def retry(self) -> Optional[Retry]:
        if self.attempts <= 1:
            return None
        retries = self.attempts - 1
        intervals = list(self.backoff_intervals[:retries]) or [0]
        return Retry(max=retries, interval=intervals)


def exponential_backoff(base_seconds: int, retries: int) -> List[int]:
    """[base, 2*base, 4*base, ...] for the given number of retries."""
    return [base_seconds * (2 ** i) for i in range(retries)]


GENERATION_POLICY = QueuePolicy(
    name=QUEUE_GENERATION,
    id_prefix="gen",
    concurrency=5,
    attempts=3,
    backoff_intervals=exponential_backoff(2, 2),
    timeout_seconds=120,
)

EXPORT_POLICY = QueuePolicy(
    name=QUEUE_EXPORT,
    id_prefix="exp",
    concurrency=3,
    attempts=2,
    backoff_intervals=[3],
    timeout_seconds=60,
)


_STATUS_MAP = {
    JobStatus.QUEUED: JobState.WAITING,
    JobStatus.CREATED: JobState.WAITING,
    JobStatus.STARTED: JobState.ACTIVE,
    JobStatus.FINISHED: JobState.COMPLETED,
    JobStatus.FAILED: JobState.FAILED,
    JobStatus.STOPPED: JobState.FAILED,
    JobStatus.CANCELED: JobState.FAILED,
    JobStatus.SCHEDULED: JobState.DELAYED,
    JobStatus.DEFERRED: JobState.DELAYED,
}


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class JobQueue:
    """One named queue plus its policy."""

    def __init__(
        self,
        redis: Redis,
        policy: QueuePolicy,
        stall_threshold_seconds: int = 90
    ):
        self.redis = redis
        self.policy = policy
        self.stall_threshold = timedelta(seconds=stall_threshold_seconds)
        self.queue = Queue(
            policy.name,
            connection=redis,
            default_timeout=policy.timeout_seconds
        )

    @property
    def name(self) -> str:
        return self.policy.name

    def _next_job_id(self) -> str:
        n = self.redis.incr(f"intervai:queue:{self.policy.name}:id")
        return f"{self.policy.id_prefix}-{n}"

    # =========================================================================
    # Producer side
    # =========================================================================

    def enqueue(
        self,
        payload: GenerationPayload | RegenerationPayload | ExportPayload,
        priority: bool = False
    ) -> Job:
        """
        Add a job to the queue.

        Args:
            payload: Tagged job payload
            priority: Put the job at the head of the queue

        Returns:
            The RQ job

        Raises:
            QueueUnavailableError: Redis could not accept the job
        """
        try:
            job_id = self._next_job_id()
            job = self.queue.enqueue(
                TASK_ENTRYPOINT,
                payload.model_dump(mode="json"),
                job_id=job_id,
                job_timeout=self.policy.timeout_seconds,
                result_ttl=self.policy.result_ttl_seconds,
                failure_ttl=self.policy.failure_ttl_seconds,
                retry=self.policy.retry(),
                at_front=priority,
                meta={
                    "kind": payload.kind,
                    "user_id": payload.user_id,
                    "attempts_made": 0,
                    "progress": 0,
                },
                description=f"{payload.kind} for session {payload.session_id}",
            )
        except RedisError as e:
            logger.error("Failed to enqueue job", queue=self.name, error=str(e))
            raise QueueUnavailableError("Job queue is unavailable, please retry shortly") from e

        logger.info(
            "Job enqueued",
            queue=self.name,
            job_id=job.id,
            kind=payload.kind,
            user_id=payload.user_id,
            priority=priority
        )
        return job

    # =========================================================================
    # Inspection
    # =========================================================================

    def get_job(self, job_id: str) -> Optional[Job]:
        """Fetch a job of this queue, or None if it does not exist here."""
        try:
            job = Job.fetch(job_id, connection=self.redis)
        except NoSuchJobError:
            return None
        if job.origin != self.name:
            return None
        return job

    def get_state(self, job: Job) -> JobState:
        status = job.get_status(refresh=True)
        state = _STATUS_MAP.get(status, JobState.WAITING)

        if state is JobState.ACTIVE and job.last_heartbeat is not None:
            age = datetime.now(timezone.utc) - _as_utc(job.last_heartbeat)
            if age > self.stall_threshold:
                return JobState.STALLED
        return state

    @staticmethod
    def owner_of(job: Job) -> Optional[str]:
        """User id stored in the job payload."""
        if job.args and isinstance(job.args[0], dict):
            return job.args[0].get("user_id")
        return job.meta.get("user_id")

    @staticmethod
    def get_progress(job: Job) -> int:
        return int(job.meta.get("progress", 0))

    @staticmethod
    def get_attempts_made(job: Job) -> int:
        return int(job.meta.get("attempts_made", 0))

    @staticmethod
    def get_result(job: Job) -> Any:
        return job.return_value()

    @staticmethod
    def get_failure_reason(job: Job) -> Optional[str]:
        """Message of the last error, or the last line of the stored traceback."""
        reason = job.meta.get("failure_reason")
        if reason:
            return reason

        result = job.latest_result()
        exc_string = getattr(result, "exc_string", None) if result else None
        if exc_string:
            lines = [line for line in exc_string.strip().splitlines() if line.strip()]
            return lines[-1] if lines else None
        return None

    # =========================================================================
    # Worker side
    # =========================================================================

    @staticmethod
    def report_progress(job: Job, progress: int) -> int:
        value = max(0, min(100, int(progress)))
        job.meta["progress"] = value
        job.save_meta()
        return value

    def counts(self) -> Dict[str, int]:
        """Registry sizes for the health endpoint."""
        return {
            "waiting": self.queue.count,
            "active": self.queue.started_job_registry.count,
            "completed": self.queue.finished_job_registry.count,
            "failed": self.queue.failed_job_registry.count,
            "delayed": self.queue.scheduled_job_registry.count + self.queue.deferred_job_registry.count,
        }

    def cleanup(self) -> None:
        """
        Run RQ's registry maintenance for this queue.

        Jobs whose worker disappeared are found in the started registry once
        their heartbeat expires; RQ retries them if attempts remain and
        fails them otherwise.
        """
        from rq.registry import clean_registries

        clean_registries(self.queue)
