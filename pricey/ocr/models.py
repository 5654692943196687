"""Data models for receipt jobs and extraction results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReceiptJob:
    """One receipt waiting for (or going through) extraction.

    ``id`` is the receipt id and doubles as the idempotency key.
    """

    id: str
    image_ref: str
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class ExtractedItem:
    """A single line item read from a receipt."""

    name: str
    price: Decimal
    quantity: int = 1
    line_number: int = 0
    confidence: float = 0.0

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class ExtractedReceipt:
    """Result of one extraction attempt."""

    store_name: str | None = None
    purchase_date: date | None = None
    items: tuple[ExtractedItem, ...] = ()
    total_amount: Decimal | None = None
    currency: str = "USD"
    confidence: float = 0.0
    raw_text: str | None = None
    reconciled: bool = False

    @property
    def is_empty(self) -> bool:
        """True when no field was extracted at all."""
        return (
            self.store_name is None
            and self.purchase_date is None
            and not self.items
            and self.total_amount is None
        )

    def to_dict(self) -> dict:
        return {
            "store_name": self.store_name,
            "purchase_date": (
                self.purchase_date.isoformat() if self.purchase_date else None
            ),
            "items": [
                {
                    "name": item.name,
                    "price": str(item.price),
                    "quantity": item.quantity,
                    "line_number": item.line_number,
                    "confidence": item.confidence,
                }
                for item in self.items
            ],
            "total_amount": (
                str(self.total_amount) if self.total_amount is not None else None
            ),
            "currency": self.currency,
            "confidence": self.confidence,
            "reconciled": self.reconciled,
        }


def empty_receipt(currency: str = "USD", raw_text: str | None = None) -> ExtractedReceipt:
    """Zero-confidence result returned when nothing could be extracted."""
    return ExtractedReceipt(currency=currency, confidence=0.0, raw_text=raw_text)
