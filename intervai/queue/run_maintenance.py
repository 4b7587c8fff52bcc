#!/usr/bin/env python3
"""
Maintenance process for INTERVAI.

Periodically:
- runs RQ registry cleanup on both queues, so jobs abandoned by a dead
  worker are retried (or failed once their attempts are used up)
- deletes export files nobody downloaded within EXPORT_MAX_AGE_HOURS

Usage:
    python -m intervai.queue.run_maintenance
"""

import asyncio
import signal
import sys

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from intervai.config import config
from intervai.context import AppContext, build_context
from intervai.utils.logging import configure_logging, queue_logger as logger


class MaintenanceScheduler:
    """
    Runs queue and export housekeeping on fixed intervals.
    """

    def __init__(
        self,
        ctx: AppContext,
        cleanup_interval_seconds: int = 60,
        purge_interval_seconds: int = 3600
    ):
        self.ctx = ctx
        self.cleanup_interval = cleanup_interval_seconds
        self.purge_interval = purge_interval_seconds

        self.scheduler = AsyncIOScheduler()
        self._is_cleaning = False
        self._running = False

    async def start(self):
        """Start the scheduler."""
        self.scheduler.add_job(
            self.cleanup_queues,
            trigger=IntervalTrigger(seconds=self.cleanup_interval),
            id="queue_registry_cleanup",
            name="Recover abandoned jobs",
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.add_job(
            self.purge_exports,
            trigger=IntervalTrigger(seconds=self.purge_interval),
            id="export_purge",
            name="Delete stale export files",
            replace_existing=True,
            max_instances=1
        )

        self.scheduler.start()
        self._running = True
        logger.info(
            "Maintenance scheduler started",
            cleanup_interval=self.cleanup_interval,
            purge_interval=self.purge_interval
        )

    async def stop(self):
        """Stop the scheduler gracefully."""
        self._running = False
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
        logger.info("Maintenance scheduler stopped")

    async def cleanup_queues(self):
        """Run registry cleanup on every queue."""
        if self._is_cleaning:
            return

        self._is_cleaning = True
        try:
            for job_queue in self.ctx.queues:
                try:
                    # Redis calls block; keep them off the event loop
                    await asyncio.to_thread(job_queue.cleanup)
                except Exception as e:
                    logger.error("Queue cleanup failed", queue=job_queue.name, error=str(e))
        finally:
            self._is_cleaning = False

    async def purge_exports(self) -> int:
        max_age = self.ctx.config.EXPORT_MAX_AGE_HOURS * 3600
        try:
            return await asyncio.to_thread(self.ctx.storage.purge_older_than, max_age)
        except OSError as e:
            logger.error("Export purge failed", directory=str(self.ctx.storage.root), error=str(e))
            return 0


async def main():
    """Run the maintenance scheduler."""
    print("=" * 50)
    print("INTERVAI Maintenance Scheduler")
    print("=" * 50)

    configure_logging(config.LOG_LEVEL)

    if not config.REDIS_URL:
        print("❌ ERROR: REDIS_URL environment variable is required")
        sys.exit(1)

    scheduler = MaintenanceScheduler(build_context(config))

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    def shutdown_handler():
        print("\n👋 Shutting down maintenance scheduler...")
        asyncio.create_task(scheduler.stop())

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown_handler)

    await scheduler.start()

    # Catch up once at startup instead of waiting a full interval
    await scheduler.cleanup_queues()
    await scheduler.purge_exports()

    print("✅ Maintenance running. Press Ctrl+C to stop.")

    try:
        while scheduler._running:
            await asyncio.sleep(1)
    except asyncio.CancelledError:
        pass

    print("Maintenance scheduler stopped.")


if __name__ == "__main__":
    asyncio.run(main())
