"""Atomic persistence of extraction results."""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from decimal import Decimal
from pathlib import Path

from ..errors import PersistenceError
from ..models import ExtractedItem, ExtractedReceipt, utcnow
from .jobs import DEFAULT_DB_PATH
from .schema import ensure_schema

logger = logging.getLogger(__name__)


class ResultPersisterDB:
    """Manages the extracted_receipts and extracted_items tables."""

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

    def commit(
        self,
        job_id: str,
        receipt: ExtractedReceipt,
        processing_ms: int | None = None,
    ) -> None:
        """Store the receipt, its items and the job's completion together.

        Either all rows are written and the job is ``completed``, or
        nothing changes.

        Raises:
            PersistenceError: If the transaction fails or the job is no
                longer being processed.
        """
        conn = self._get_conn()
        stamp = utcnow().isoformat()
        try:
            conn.execute(
                "DELETE FROM extracted_receipts WHERE receipt_id = ?", (job_id,)
            )
            conn.execute(
                """INSERT INTO extracted_receipts
                   (receipt_id, store_name, purchase_date, total_amount,
                    currency, confidence, reconciled, raw_text,
                    processing_ms, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    job_id,
                    receipt.store_name,
                    receipt.purchase_date.isoformat() if receipt.purchase_date else None,
                    str(receipt.total_amount) if receipt.total_amount is not None else None,
                    receipt.currency,
                    receipt.confidence,
                    int(receipt.reconciled),
                    receipt.raw_text,
                    processing_ms,
                    stamp,
                ),
            )
            conn.executemany(
                """INSERT INTO extracted_items
                   (receipt_id, name, price, quantity, line_number, confidence)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                [
                    (
                        job_id,
                        item.name,
                        str(item.price),
                        item.quantity,
                        item.line_number,
                        item.confidence,
                    )
                    for item in receipt.items
                ],
            )
            cur = conn.execute(
                """UPDATE receipt_jobs
                   SET status = 'completed', last_error = NULL,
                       lease_expires_at = NULL, updated_at = ?
                   WHERE id = ? AND status = 'processing'""",
                (stamp, job_id),
            )
            if cur.rowcount != 1:
                raise PersistenceError(f"Job {job_id} is not in processing state")
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Failed to commit result for {job_id}: {e}") from e
        except PersistenceError:
            conn.rollback()
            raise

        logger.info(
            "Committed receipt %s: %d items, reconciled=%s",
            job_id,
            len(receipt.items),
            receipt.reconciled,
        )

    def get_receipt(self, job_id: str) -> ExtractedReceipt | None:
        """Load a committed receipt with its items in line order."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM extracted_receipts WHERE receipt_id = ?", (job_id,)
        ).fetchone()
        if row is None:
            return None

        item_rows = conn.execute(
            """SELECT * FROM extracted_items
               WHERE receipt_id = ? ORDER BY line_number, id""",
            (job_id,),
        ).fetchall()
        items = tuple(
            ExtractedItem(
                name=r["name"],
                price=Decimal(r["price"]),
                quantity=r["quantity"],
                line_number=r["line_number"],
                confidence=r["confidence"],
            )
            for r in item_rows
        )
        return ExtractedReceipt(
            store_name=row["store_name"],
            purchase_date=(
                date.fromisoformat(row["purchase_date"]) if row["purchase_date"] else None
            ),
            items=items,
            total_amount=(
                Decimal(row["total_amount"]) if row["total_amount"] is not None else None
            ),
            currency=row["currency"],
            confidence=row["confidence"],
            raw_text=row["raw_text"],
            reconciled=bool(row["reconciled"]),
        )

    def get_processing_ms(self, job_id: str) -> int | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT processing_ms FROM extracted_receipts WHERE receipt_id = ?",
            (job_id,),
        ).fetchone()
        return row["processing_ms"] if row else None
