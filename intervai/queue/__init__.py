"""
Redis Queue (RQ) integration for INTERVAI job processing.

Two queues share one entrypoint: question generation and export rendering.
"""

from .job_queue import (
    JobQueue,
    JobState,
    QueuePolicy,
    GENERATION_POLICY,
    EXPORT_POLICY,
    QUEUE_GENERATION,
    QUEUE_EXPORT,
)
from .payloads import GenerationPayload, ExportPayload, parse_payload

__all__ = [
    "JobQueue",
    "JobState",
    "QueuePolicy",
    "GENERATION_POLICY",
    "EXPORT_POLICY",
    "QUEUE_GENERATION",
    "QUEUE_EXPORT",
    "GenerationPayload",
    "ExportPayload",
    "parse_payload",
]
