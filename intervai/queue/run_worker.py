#!/usr/bin/env python3
"""
RQ Worker Runner for INTERVAI.

Runs one worker pool per queue, each sized by its queue policy
(question-generation: 5, export-generation: 3). Run this separately from
the web server.

Usage:
    python -m intervai.queue.run_worker                                  # Both queues
    python -m intervai.queue.run_worker --queues question-generation     # One queue
    python -m intervai.queue.run_worker --burst                          # Process and exit
"""

import argparse
import multiprocessing
import sys

from rq.worker_pool import WorkerPool

from intervai.config import config
from intervai.context import build_context
from intervai.queue.connection import describe_redis_url
from intervai.queue.job_queue import QUEUE_EXPORT, QUEUE_GENERATION
from intervai.queue.tasks import get_worker_context, set_worker_context
from intervai.utils.logging import configure_logging, worker_logger as logger


def run_pool(queue_name: str, burst: bool, logging_level: str) -> None:
    """Block running a pool of `policy.concurrency` workers on one queue."""
    ctx = get_worker_context()
    job_queue = next(q for q in ctx.queues if q.name == queue_name)
    pool = WorkerPool(
        [job_queue.queue],
        connection=ctx.redis,
        num_workers=job_queue.policy.concurrency,
    )
    logger.info(
        "Worker pool starting",
        queue=job_queue.name,
        workers=job_queue.policy.concurrency,
        burst=burst
    )
    pool.start(burst=burst, logging_level=logging_level)


def main():
    parser = argparse.ArgumentParser(description="Run INTERVAI RQ workers")
    parser.add_argument(
        "--queues",
        "-q",
        nargs="+",
        choices=[QUEUE_GENERATION, QUEUE_EXPORT],
        default=[QUEUE_GENERATION, QUEUE_EXPORT],
        help=f"Queues to process (default: {QUEUE_GENERATION} {QUEUE_EXPORT})"
    )
    parser.add_argument(
        "--burst",
        "-b",
        action="store_true",
        help="Run in burst mode (process all jobs and exit)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()
    logging_level = "DEBUG" if args.verbose else config.LOG_LEVEL
    configure_logging(logging_level)

    # Validate Redis configuration
    if not config.REDIS_URL:
        print("❌ ERROR: REDIS_URL environment variable is required")
        sys.exit(1)

    try:
        ctx = build_context(config)
        ctx.redis.ping()
        print(f"✅ Connected to Redis: {describe_redis_url(config.REDIS_URL)}")

        if not config.llm_configured and QUEUE_GENERATION in args.queues:
            print("⚠️  ANTHROPIC_API_KEY is not set - generation jobs will fail")

        set_worker_context(ctx)
        selected = [q for q in ctx.queues if q.name in args.queues]
        print(f"📋 Listening on queues: {', '.join(q.name for q in selected)}")
        print(f"🚀 Workers starting {'(burst mode)' if args.burst else ''}")
        print("   Press Ctrl+C to stop")
        print("-" * 50)

        if len(selected) == 1:
            run_pool(selected[0].name, args.burst, logging_level)
            return

        # Each pool supervises its own workers, so give each its own process
        processes = [
            multiprocessing.Process(
                target=run_pool,
                args=(job_queue.name, args.burst, logging_level),
                name=f"pool-{job_queue.name}",
            )
            for job_queue in selected
        ]
        for process in processes:
            process.start()
        for process in processes:
            process.join()

    except KeyboardInterrupt:
        print("\n👋 Worker stopped by user")
        sys.exit(0)
    except Exception as e:
        print(f"❌ Worker error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
