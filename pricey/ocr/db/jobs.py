"""Durable receipt job queue backed by the receipt_jobs table."""

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import datetime
from pathlib import Path

from ..models import JobStatus, ReceiptJob, utcnow
from .schema import ensure_schema

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "~/.local/share/pricey/receipts.db"


def _row_to_job(row: sqlite3.Row) -> ReceiptJob:
    return ReceiptJob(
        id=row["id"],
        image_ref=row["image_ref"],
        status=JobStatus(row["status"]),
        attempts=row["attempts"],
        last_error=row["last_error"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class JobQueueDB:
    """Manages the receipt_jobs table.

    Scheduling columns (``available_at``, ``lease_expires_at``) hold epoch
    seconds; every method that reads the clock accepts ``now`` so callers
    and tests can pin it.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def enqueue(self, job_id: str, image_ref: str, now: float | None = None) -> bool:
        """Add a job unless one with the same id is already live.

        A job that previously ended in ``failed`` is reset to ``pending``
        with a fresh attempt budget.

        Returns:
            True if the job was inserted or reset, False if it was a no-op.
        """
        now = time.time() if now is None else now
        stamp = utcnow().isoformat()
        conn = self._get_conn()

        row = conn.execute(
            "SELECT status FROM receipt_jobs WHERE id = ?", (job_id,)
        ).fetchone()
        if row is not None and row["status"] != JobStatus.FAILED.value:
            logger.debug("Job %s already %s; ignoring resubmission", job_id, row["status"])
            return False

        if row is None:
            conn.execute(
                """INSERT INTO receipt_jobs
                   (id, image_ref, status, attempts, available_at,
                    created_at, updated_at)
                   VALUES (?, ?, 'pending', 0, ?, ?, ?)""",
                (job_id, image_ref, now, stamp, stamp),
            )
            logger.info("Enqueued job %s", job_id)
        else:
            conn.execute(
                """UPDATE receipt_jobs
                   SET image_ref = ?, status = 'pending', attempts = 0,
                       last_error = NULL, available_at = ?,
                       lease_expires_at = NULL, updated_at = ?
                   WHERE id = ?""",
                (image_ref, now, stamp, job_id),
            )
            logger.info("Re-enqueued failed job %s", job_id)
        conn.commit()
        return True

    def dequeue(
        self, lease_seconds: float = 120.0, now: float | None = None
    ) -> ReceiptJob | None:
        """Claim the oldest ready job and count the attempt.

        The claim is a conditional update on ``status = 'pending'`` so a job
        is leased to at most one worker.
        """
        now = time.time() if now is None else now
        conn = self._get_conn()

        candidates = conn.execute(
            """SELECT id FROM receipt_jobs
               WHERE status = 'pending' AND available_at <= ?
               ORDER BY available_at, created_at
               LIMIT 10""",
            (now,),
        ).fetchall()

        for candidate in candidates:
            cur = conn.execute(
                """UPDATE receipt_jobs
                   SET status = 'processing', attempts = attempts + 1,
                       lease_expires_at = ?, updated_at = ?
                   WHERE id = ? AND status = 'pending'""",
                (now + lease_seconds, utcnow().isoformat(), candidate["id"]),
            )
            conn.commit()
            if cur.rowcount == 1:
                return self.get(candidate["id"])
        return None

    def reschedule(
        self, job_id: str, error: str, delay: float, now: float | None = None
    ) -> bool:
        """Return a processing job to ``pending`` after ``delay`` seconds."""
        now = time.time() if now is None else now
        conn = self._get_conn()
        cur = conn.execute(
            """UPDATE receipt_jobs
               SET status = 'pending', last_error = ?, available_at = ?,
                   lease_expires_at = NULL, updated_at = ?
               WHERE id = ? AND status = 'processing'""",
            (error, now + delay, utcnow().isoformat(), job_id),
        )
        conn.commit()
        return cur.rowcount == 1

    def mark_failed(self, job_id: str, error: str) -> bool:
        """Move a processing job to the terminal ``failed`` state."""
        conn = self._get_conn()
        cur = conn.execute(
            """UPDATE receipt_jobs
               SET status = 'failed', last_error = ?,
                   lease_expires_at = NULL, updated_at = ?
               WHERE id = ? AND status = 'processing'""",
            (error, utcnow().isoformat(), job_id),
        )
        conn.commit()
        return cur.rowcount == 1

    def get(self, job_id: str) -> ReceiptJob | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM receipt_jobs WHERE id = ?", (job_id,)
        ).fetchone()
        return _row_to_job(row) if row else None

    def recover_stalled(self, max_attempts: int, now: float | None = None) -> int:
        """Release processing jobs whose lease has expired.

        Jobs with attempts left go back to ``pending``; the rest fail.

        Returns:
            Number of jobs recovered or failed.
        """
        now = time.time() if now is None else now
        stamp = utcnow().isoformat()
        conn = self._get_conn()

        failed = conn.execute(
            """UPDATE receipt_jobs
               SET status = 'failed', last_error = 'lease expired',
                   lease_expires_at = NULL, updated_at = ?
               WHERE status = 'processing' AND lease_expires_at < ?
                 AND attempts >= ?""",
            (stamp, now, max_attempts),
        ).rowcount
        requeued = conn.execute(
            """UPDATE receipt_jobs
               SET status = 'pending', last_error = 'lease expired',
                   available_at = ?, lease_expires_at = NULL, updated_at = ?
               WHERE status = 'processing' AND lease_expires_at < ?""",
            (now, stamp, now),
        ).rowcount
        conn.commit()

        if failed or requeued:
            logger.warning(
                "Recovered stalled jobs: requeued=%d failed=%d", requeued, failed
            )
        return failed + requeued

    def counts(self) -> dict[str, int]:
        """Number of jobs per status (every status present, zero if none)."""
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT status, COUNT(*) AS n FROM receipt_jobs GROUP BY status"
        ).fetchall()
        result = {status.value: 0 for status in JobStatus}
        result.update({r["status"]: r["n"] for r in rows})
        return result
