"""Text-based extraction built from the four field extractors."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date

from ..catalog import StoreCatalog
from ..config import ExtractionConfig
from ..extractors import (
    DateExtractor,
    ItemExtractor,
    StoreDetector,
    TotalExtractor,
    detect_currency,
)
from ..models import ExtractedReceipt, empty_receipt
from . import ExtractionProvider

logger = logging.getLogger(__name__)


class HeuristicProvider(ExtractionProvider):
    """Extract receipt fields from OCR text with pattern heuristics.

    Deterministic for a given text and never touches the network.
    """

    name = "heuristic"
    requires_text = True

    def __init__(
        self,
        catalog: StoreCatalog | None = None,
        config: ExtractionConfig | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._config = config or ExtractionConfig()
        self._store = StoreDetector(
            catalog,
            search_lines=self._config.store_search_lines,
            threshold=self._config.fuzzy_threshold,
        )
        self._date = DateExtractor(clock=clock)
        self._items = ItemExtractor()
        self._total = TotalExtractor()

    async def extract(
        self,
        image_bytes: bytes,
        recognized_text: str | None = None,
        *,
        text_confidence: float | None = None,
    ) -> ExtractedReceipt:
        return self.extract_text(recognized_text, text_confidence=text_confidence)

    def extract_text(
        self, text: str | None, *, text_confidence: float | None = None
    ) -> ExtractedReceipt:
        """Synchronous core of ``extract``."""
        currency_default = self._config.default_currency
        if not text or not text.strip():
            logger.warning("No recognized text; returning empty result")
            return empty_receipt(currency_default, raw_text=text or None)

        store_name = self._store.detect(text)
        purchase_date = self._date.detect(text)
        items = self._items.detect(text)
        total = self._total.detect(text)
        currency = detect_currency(text, default=currency_default)

        confidence = 0.0
        if store_name is not None:
            confidence += 0.2
        if purchase_date is not None:
            confidence += 0.2
        if total is not None:
            confidence += 0.3
        if items:
            confidence += 0.3 * sum(i.confidence for i in items) / len(items)
        if text_confidence is not None:
            confidence *= max(0.0, min(1.0, text_confidence))

        logger.info(
            "Heuristic extraction: store=%s date=%s items=%d total=%s",
            store_name,
            purchase_date,
            len(items),
            total,
        )
        return ExtractedReceipt(
            store_name=store_name,
            purchase_date=purchase_date,
            items=tuple(items),
            total_amount=total,
            currency=currency,
            confidence=round(confidence, 2),
            raw_text=text,
        )
