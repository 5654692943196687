"""Periodic maintenance of the job queue."""

from __future__ import annotations

import logging

from .config import OrchestratorConfig
from .db import JobQueueDB

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """Recovers jobs whose worker lease expired.

    Uses APScheduler on the running asyncio loop.
    """

    def __init__(self, queue: JobQueueDB, config: OrchestratorConfig | None = None) -> None:
        """
        Raises:
            ImportError: If apscheduler is not installed.
        """
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.interval import IntervalTrigger
        except ImportError:
            raise ImportError(
                "apscheduler is required: pip install pricey-ocr"
            ) from None

        self._queue = queue
        self._config = config or OrchestratorConfig()
        self._scheduler = AsyncIOScheduler()
        self._IntervalTrigger = IntervalTrigger
        self._running = False

    def setup_jobs(self) -> None:
        """Register maintenance jobs."""
        self._scheduler.add_job(
            self._job_recover_stalled,
            trigger=self._IntervalTrigger(
                seconds=self._config.stalled_check_interval
            ),
            id="recover_stalled",
            name="Stalled job recovery",
            replace_existing=True,
        )
        logger.info(
            "Registered stalled job recovery every %gs",
            self._config.stalled_check_interval,
        )

    def start(self) -> None:
        """Start the scheduler. Must be called with an event loop running."""
        self.setup_jobs()
        self._scheduler.start()
        self._running = True
        logger.info("Maintenance scheduler started")

    def stop(self) -> None:
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Maintenance scheduler stopped")

    @property
    def running(self) -> bool:
        return self._running

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled jobs."""
        jobs = []
        for job in self._scheduler.get_jobs():
            # pending jobs have no next_run_time until the scheduler starts
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(next_run) if next_run else None,
            })
        return jobs

    async def _job_recover_stalled(self) -> None:
        try:
            count = self._queue.recover_stalled(self._config.max_attempts)
            if count:
                logger.info("Recovered %d stalled job(s)", count)
        except Exception:
            logger.exception("Stalled job recovery failed")
