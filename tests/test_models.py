"""Tests for data models."""

from datetime import date
from decimal import Decimal

from pricey.ocr.models import (
    ExtractedItem,
    ExtractedReceipt,
    JobStatus,
    ReceiptJob,
    empty_receipt,
)


def test_job_defaults():
    job = ReceiptJob(id="r1", image_ref="r1.jpg")
    assert job.status is JobStatus.PENDING
    assert job.attempts == 0
    assert job.last_error is None
    assert job.created_at.tzinfo is not None


def test_terminal_statuses():
    assert JobStatus.COMPLETED.terminal
    assert JobStatus.FAILED.terminal
    assert not JobStatus.PENDING.terminal
    assert not JobStatus.PROCESSING.terminal


def test_line_total():
    item = ExtractedItem(name="Bananas", price=Decimal("1.50"), quantity=3)
    assert item.line_total == Decimal("4.50")


def test_empty_receipt():
    receipt = empty_receipt("EUR")
    assert receipt.is_empty
    assert receipt.currency == "EUR"
    assert receipt.confidence == 0.0


def test_receipt_with_only_total_is_not_empty():
    assert not ExtractedReceipt(total_amount=Decimal("1.00")).is_empty


def test_to_dict():
    receipt = ExtractedReceipt(
        store_name="Spar",
        purchase_date=date(2026, 10, 1),
        items=(ExtractedItem("Semmel", Decimal("0.35"), 4, 2, 0.7),),
        total_amount=Decimal("1.40"),
        currency="EUR",
        confidence=0.88,
        reconciled=True,
    )
    assert receipt.to_dict() == {
        "store_name": "Spar",
        "purchase_date": "2026-10-01",
        "items": [
            {
                "name": "Semmel",
                "price": "0.35",
                "quantity": 4,
                "line_number": 2,
                "confidence": 0.7,
            }
        ],
        "total_amount": "1.40",
        "currency": "EUR",
        "confidence": 0.88,
        "reconciled": True,
    }
