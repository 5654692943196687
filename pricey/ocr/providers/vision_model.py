"""Whole-image extraction through a vision-capable model."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable
from datetime import date
from decimal import Decimal, InvalidOperation

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import VisionClientError
from ..extractors import is_valid_receipt_date
from ..models import ExtractedItem, ExtractedReceipt, empty_receipt
from ..vision import VisionClient
from ..vision.prompt import RECEIPT_PROMPT
from . import ExtractionProvider

logger = logging.getLogger(__name__)

_MAX_PRICE = Decimal("10000")
_MAX_QUANTITY = 100


class VisionItem(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    name: str
    price: float
    quantity: float = 1


class VisionReceipt(BaseModel):
    """The JSON object every vision backend must return."""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    store_name: str | None = Field(alias="storeName")
    date: str | None
    items: list[VisionItem]
    total: float | None
    currency: str = "USD"
    confidence: float = Field(default=0.8, ge=0, le=1)


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [line for line in lines[1:] if not line.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned


def parse_response(text: str) -> VisionReceipt:
    """Parse and validate a model reply.

    Raises:
        ValueError: If the reply is not JSON or does not match the schema
            (``pydantic.ValidationError`` is a ``ValueError``).
    """
    data = json.loads(_strip_fences(text))
    return VisionReceipt.model_validate(data)


def sniff_media_type(image_bytes: bytes) -> str:
    if image_bytes.startswith(b"\x89PNG"):
        return "image/png"
    if image_bytes.startswith(b"GIF8"):
        return "image/gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


def _to_price(value: float | None) -> Decimal | None:
    if value is None:
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return None
    if not price.is_finite():
        return None
    if not (0 < price < _MAX_PRICE):
        return None
    return price


def _to_quantity(value: float) -> int:
    if not (1 <= value < _MAX_QUANTITY) or value != int(value):
        return 1
    return int(value)


class VisionModelProvider(ExtractionProvider):
    """Send the receipt image to a vision model and validate its answer.

    A reply that fails validation is discarded in favour of an empty
    result; partial objects are never passed on.
    """

    name = "vision"
    requires_text = False

    def __init__(
        self,
        client: VisionClient,
        request_timeout: float = 30.0,
        default_currency: str = "USD",
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._request_timeout = request_timeout
        self._default_currency = default_currency
        self._clock = clock
        logger.info(
            "Initialized vision provider: backend=%s timeout=%.1fs",
            client.name,
            request_timeout,
        )

    @property
    def client(self) -> VisionClient:
        return self._client

    async def extract(
        self,
        image_bytes: bytes,
        recognized_text: str | None = None,
        *,
        text_confidence: float | None = None,
    ) -> ExtractedReceipt:
        started = time.monotonic()
        try:
            reply = await asyncio.wait_for(
                self._client.complete(
                    RECEIPT_PROMPT, image_bytes, sniff_media_type(image_bytes)
                ),
                timeout=self._request_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Vision request timed out after %.1fs", self._request_timeout
            )
            return empty_receipt(self._default_currency)
        except (VisionClientError, ValueError) as e:
            logger.error("Vision request failed: %s", e)
            return empty_receipt(self._default_currency)

        try:
            parsed = parse_response(reply)
        except ValueError as e:
            # ValidationError and JSONDecodeError are both ValueErrors
            kind = "schema" if isinstance(e, ValidationError) else "decode"
            logger.error("Discarding vision reply (%s error): %s", kind, e)
            logger.debug("Raw vision reply: %s", reply)
            return empty_receipt(self._default_currency)

        receipt = self._to_receipt(parsed)
        logger.info(
            "Vision extraction complete in %.2fs: store=%s items=%d total=%s",
            time.monotonic() - started,
            receipt.store_name,
            len(receipt.items),
            receipt.total_amount,
        )
        return receipt

    def _to_receipt(self, parsed: VisionReceipt) -> ExtractedReceipt:
        confidence = round(parsed.confidence, 2)

        items: list[ExtractedItem] = []
        for index, raw in enumerate(parsed.items):
            name = " ".join(raw.name.split())
            price = _to_price(raw.price)
            if len(name) < 2 or price is None:
                logger.debug("Dropping invalid vision item: %r", raw)
                continue
            quantity = _to_quantity(raw.quantity)
            items.append(
                ExtractedItem(
                    name=name,
                    price=price,
                    quantity=quantity,
                    line_number=index + 1,
                    confidence=confidence,
                )
            )

        return ExtractedReceipt(
            store_name=(parsed.store_name or "").strip() or None,
            purchase_date=self._parse_date(parsed.date),
            items=tuple(items),
            total_amount=_to_price(parsed.total),
            currency=self._parse_currency(parsed.currency),
            confidence=confidence,
            raw_text=None,
        )

    def _parse_date(self, raw: str | None) -> date | None:
        if not raw:
            return None
        try:
            parsed = date.fromisoformat(raw.strip()[:10])
        except ValueError:
            logger.warning("Invalid date from vision model: %r", raw)
            return None
        if not is_valid_receipt_date(parsed, self._clock()):
            logger.warning("Vision date outside the accepted window: %s", parsed)
            return None
        return parsed

    def _parse_currency(self, raw: str) -> str:
        code = raw.strip().upper()
        if len(code) == 3 and code.isalpha():
            return code
        return self._default_currency
