"""Bounded-concurrency worker pool that drives receipt jobs to completion."""

from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal

from .config import OrchestratorConfig
from .db import JobQueueDB, ResultPersisterDB
from .errors import (
    ConfigurationError,
    ExtractionValidationError,
    JobTimeoutError,
    PermanentError,
    PersistenceError,
)
from .models import ExtractedReceipt, JobStatus, ReceiptJob
from .providers import ExtractionProvider
from .reconcile import DEFAULT_TOLERANCE, apply_reconciliation
from .recognition import OCREngine
from .storage import ImageStore

logger = logging.getLogger(__name__)


def _job_context(job: ReceiptJob, **fields) -> dict:
    """Structured fields attached to log records as ``extra_data``."""
    return {"job_id": job.id, "attempts": job.attempts, **fields}


class JobOrchestrator:
    """Runs extraction jobs from the queue with retries and backoff.

    Every worker is a task on the running event loop. A job moves
    ``pending -> processing`` when a worker claims it, then to
    ``completed`` through the persister, back to ``pending`` when a retry
    is due, or to ``failed`` once its attempts are spent or the error is
    permanent. This class alone decides between retry and failure.
    """

    def __init__(
        self,
        queue: JobQueueDB,
        persister: ResultPersisterDB,
        images: ImageStore,
        provider: ExtractionProvider,
        ocr: OCREngine | None = None,
        config: OrchestratorConfig | None = None,
        reconcile_tolerance: Decimal | float = DEFAULT_TOLERANCE,
    ) -> None:
        if provider.requires_text and ocr is None:
            raise ConfigurationError(
                f"Provider {provider.name!r} needs an OCR engine"
            )
        self._queue = queue
        self._persister = persister
        self._images = images
        self._provider = provider
        self._ocr = ocr
        self._config = config or OrchestratorConfig()
        self._tolerance = reconcile_tolerance
        self._stopping = asyncio.Event()
        self._workers: list[asyncio.Task] = []
        self._in_flight = 0

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def submit(self, job: ReceiptJob) -> bool:
        """Queue ``job`` unless a job with the same id is already live.

        Returns:
            True if the job was queued, False for a duplicate submission.
        """
        return self._queue.enqueue(job.id, job.image_ref)

    async def run(self) -> None:
        """Run workers until ``stop()`` is called.

        Workers finish the job they hold before exiting.
        """
        self._stopping.clear()
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"receipt-worker-{i}")
            for i in range(self._config.concurrency)
        ]
        logger.info(
            "Started %d workers (provider=%s)",
            self._config.concurrency,
            self._provider.name,
        )
        try:
            await asyncio.gather(*self._workers)
        finally:
            self._workers = []
            logger.info("Workers stopped")

    def stop(self) -> None:
        self._stopping.set()

    async def run_until_idle(self) -> None:
        """Run workers until no job is pending or processing."""
        runner = asyncio.create_task(self.run())
        try:
            while True:
                await asyncio.sleep(self._config.poll_interval)
                counts = self._queue.counts()
                idle = (
                    counts[JobStatus.PENDING.value] == 0
                    and counts[JobStatus.PROCESSING.value] == 0
                    and self._in_flight == 0
                )
                if idle or runner.done():
                    break
        finally:
            self.stop()
            await runner

    async def process_next(self) -> bool:
        """Claim and process a single ready job.

        Returns:
            False if no job was ready.
        """
        job = self._queue.dequeue(self._config.lease_seconds)
        if job is None:
            return False
        await self._process(job)
        return True

    async def _worker(self, index: int) -> None:
        while not self._stopping.is_set():
            try:
                job = self._queue.dequeue(self._config.lease_seconds)
            except Exception:
                # e.g. "database is locked"; the next poll tries again
                logger.exception("Worker %d could not claim a job", index)
                job = None
            if job is None:
                try:
                    await asyncio.wait_for(
                        self._stopping.wait(), timeout=self._config.poll_interval
                    )
                except asyncio.TimeoutError:
                    pass
                continue
            logger.debug("Worker %d claimed job %s", index, job.id)
            try:
                await self._process(job)
            except Exception:
                # the lease expires and recover_stalled re-queues the job
                logger.exception(
                    "Worker %d could not record the outcome of job %s",
                    index,
                    job.id,
                    extra={"extra_data": _job_context(job)},
                )

    async def _process(self, job: ReceiptJob) -> None:
        self._in_flight += 1
        started = time.monotonic()
        try:
            try:
                receipt = await asyncio.wait_for(
                    self._extract(job), timeout=self._config.job_timeout
                )
            except asyncio.TimeoutError:
                self._handle_failure(
                    job,
                    JobTimeoutError(
                        f"Job exceeded its {self._config.job_timeout:g}s deadline"
                    ),
                )
                return
            except Exception as e:
                if not isinstance(e, (PermanentError, ExtractionValidationError)):
                    logger.exception("Error while processing job %s", job.id)
                self._handle_failure(job, e)
                return

            receipt = apply_reconciliation(receipt, self._tolerance)
            elapsed_ms = int((time.monotonic() - started) * 1000)
            try:
                self._persister.commit(job.id, receipt, processing_ms=elapsed_ms)
            except PersistenceError as e:
                self._handle_failure(job, e)
                return

            logger.info(
                "Job %s completed in %dms (attempt %d, confidence=%.2f)",
                job.id,
                elapsed_ms,
                job.attempts,
                receipt.confidence,
                extra={
                    "extra_data": _job_context(
                        job, processing_ms=elapsed_ms, reconciled=receipt.reconciled
                    )
                },
            )
        finally:
            self._in_flight -= 1

    async def _extract(self, job: ReceiptJob) -> ExtractedReceipt:
        image_bytes = await self._images.fetch(job.image_ref)

        text: str | None = None
        text_confidence: float | None = None
        if self._provider.requires_text:
            result = await asyncio.to_thread(self._ocr.recognize, image_bytes)
            text, text_confidence = result.text, result.confidence

        receipt = await self._provider.extract(
            image_bytes, text, text_confidence=text_confidence
        )
        if receipt.is_empty:
            raise ExtractionValidationError("No receipt fields could be extracted")
        return receipt

    def _handle_failure(self, job: ReceiptJob, error: BaseException) -> None:
        message = f"{type(error).__name__}: {error}"
        permanent = isinstance(error, (PermanentError, ConfigurationError)) or (
            isinstance(error, ExtractionValidationError)
            and not self._config.retry_validation_errors
        )

        if permanent or job.attempts >= self._config.max_attempts:
            self._queue.mark_failed(job.id, message)
            logger.error(
                "Job %s failed after %d attempt(s): %s",
                job.id,
                job.attempts,
                message,
                extra={"extra_data": _job_context(job, status="failed")},
            )
            return

        delay = self._config.backoff_base * 2 ** (job.attempts - 1)
        self._queue.reschedule(job.id, message, delay)
        logger.warning(
            "Job %s attempt %d/%d failed (%s); retrying in %.1fs",
            job.id,
            job.attempts,
            self._config.max_attempts,
            message,
            delay,
            extra={"extra_data": _job_context(job, retry_in=delay)},
        )
