"""Cross-check of the extracted total against the item sum."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal

from .models import ExtractedItem, ExtractedReceipt

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.05")


def calculate_total(items: Iterable[ExtractedItem]) -> Decimal:
    """Sum of ``price * quantity`` over all items."""
    return sum((item.line_total for item in items), Decimal("0"))


def reconcile(
    extracted_total: Decimal | float | None,
    items: Iterable[ExtractedItem],
    tolerance: Decimal | float = DEFAULT_TOLERANCE,
) -> bool:
    """Whether ``extracted_total`` agrees with the item sum.

    The relative difference is measured against the extracted total, so
    a total of zero (or less) is never reconciled. The default 5% leaves
    room for tax and rounding.
    """
    if extracted_total is None:
        return False
    extracted_total = Decimal(str(extracted_total))
    if extracted_total <= 0:
        return False

    calculated = calculate_total(items)
    variance = abs(extracted_total - calculated) / extracted_total
    matched = variance <= Decimal(str(tolerance))
    logger.debug(
        "Total check: extracted=%s calculated=%s variance=%.4f matched=%s",
        extracted_total,
        calculated,
        variance,
        matched,
    )
    return matched


def apply_reconciliation(
    receipt: ExtractedReceipt, tolerance: Decimal | float = DEFAULT_TOLERANCE
) -> ExtractedReceipt:
    """Return a copy of ``receipt`` with its ``reconciled`` flag set."""
    return replace(
        receipt, reconciled=reconcile(receipt.total_amount, receipt.items, tolerance)
    )
