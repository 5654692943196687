"""Line item extraction from receipt text."""

from __future__ import annotations

import re

from ..models import ExtractedItem
from .prices import find_price, has_currency_symbol

# Lines that never describe a purchased item (English, German, Austrian)
SKIP_PATTERNS: list[re.Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^total",
        r"^subtotal",
        r"^sub\s+total",
        r"^summe",
        r"^zwischensumme",
        r"^gesamt",
        r"^tax",
        r"^mwst",
        r"^mehrwertsteuer",
        r"^ust",
        r"^payment",
        r"^bezahl",
        r"^change",
        r"^cash",
        r"^card",
        r"^karte",
        r"^visa",
        r"^mastercard",
        r"^balance",
        r"^amount\s+due",
        r"^thank\s*you",
        r"^danke",
        r"^vielen.*dank",
        r"^please",
        r"^bitte",
        r"^store",
        r"^gesch[äa]ft",
        r"^filiale",
        r"^customer",
        r"^kunde",
        r"^cashier",
        r"^kassa",
        r"^kasse",
        r"^register",
        r"^transaction",
        r"^transaktion",
        r"^receipt",
        r"^rechnung",
        r"^beleg",
        r"^date",
        r"^datum",
        r"^time",
        r"^uhr",
        r"^zeit",
        r"^tel\b",
        r"^items?\s*purchased",
        r"^artikel",
        r"^lieferung",
        r"^bestellung",
        r"^rechnungsadresse",
        r"^\s*$",
        r"^[-=*_#~. ]+$",
        r"^art\s+ne\s+produkt",
        r"^preis.*pro",
        r"^menge",
        r"^enhelt",
        r"uid.*nummer",
        r"firmenbuch",
        r"^\d{1,2}[-./]\d{1,2}[-./]\d{2,4}",
    )
]

# Quantity markers, tried in order; the first in-range value wins.
QUANTITY_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^(\d+)\s*[@x×]\s*", re.IGNORECASE),
    re.compile(r"qty:?\s*(\d+)", re.IGNORECASE),
    re.compile(r"menge:?\s*(\d+)", re.IGNORECASE),
    re.compile(r"anzahl:?\s*(\d+)", re.IGNORECASE),
    re.compile(r"stk:?\s*(\d+)", re.IGNORECASE),
]

_ARTICLE_NUMBER = re.compile(r"^\d{2,}-\d+\s+")
_SKU_PREFIX = re.compile(r"^[a-z]{2,}-\d+\s+", re.IGNORECASE)
_QUANTITY_PREFIX = re.compile(r"^\d+\s*[@x×]\s*", re.IGNORECASE)
_QUANTITY_LABEL = re.compile(r"(?:qty|menge|anzahl|stk):?\s*\d+", re.IGNORECASE)
_TRAILING_JUNK = re.compile(r"(?:\s+[x×]|[\s$€£¥:@×-])+$", re.IGNORECASE)
_UNUSUAL_CHARS = re.compile(r"[^a-zäöüß0-9\s$€£.,@×x-]", re.IGNORECASE)

MAX_QUANTITY = 100


class ItemExtractor:
    """Turn receipt text into an ordered list of line items.

    Each call makes one pass over the text; items keep the index of the
    line they came from.
    """

    def detect(self, text: str) -> list[ExtractedItem]:
        items: list[ExtractedItem] = []
        for number, raw in enumerate(text.splitlines()):
            line = raw.strip()
            if not line or self._should_skip(line):
                continue
            item = self._parse_line(line, number)
            if item is not None:
                items.append(item)
        return items

    @staticmethod
    def _should_skip(line: str) -> bool:
        return any(pattern.search(line) for pattern in SKIP_PATTERNS)

    def _parse_line(self, line: str, line_number: int) -> ExtractedItem | None:
        price_match = find_price(line)
        if price_match is None:
            return None

        name = clean_item_name(line[: price_match.start])
        if len(name) < 2:
            return None

        quantity = parse_quantity(line)
        return ExtractedItem(
            name=name,
            price=price_match.price,
            quantity=quantity,
            line_number=line_number,
            confidence=score_item(line, name, float(price_match.price)),
        )


def clean_item_name(raw: str) -> str:
    """Strip article numbers, quantity markers and stray symbols from a name."""
    name = raw.strip()
    name = _ARTICLE_NUMBER.sub("", name)
    name = _SKU_PREFIX.sub("", name)
    name = _QUANTITY_PREFIX.sub("", name)
    name = _QUANTITY_LABEL.sub("", name)
    name = re.sub(r"\s+", " ", name).strip()
    # "Apples 2 x" leaves a dangling marker before the price
    name = _TRAILING_JUNK.sub("", name)
    return name.strip()


def parse_quantity(line: str) -> int:
    """Quantity from ``N @``, ``N x``, ``Qty: N`` and similar; defaults to 1."""
    for pattern in QUANTITY_PATTERNS:
        match = pattern.search(line)
        if match is None:
            continue
        value = int(match.group(1))
        if 1 <= value < MAX_QUANTITY:
            return value
    return 1


def score_item(line: str, name: str, price: float) -> float:
    """Heuristic confidence for a parsed item line."""
    confidence = 0.5

    if has_currency_symbol(line):
        confidence += 0.2

    if 5 <= len(name) <= 50:
        confidence += 0.1

    if 0.5 <= price <= 500:
        confidence += 0.1

    if _UNUSUAL_CHARS.search(line):
        confidence -= 0.1

    return round(max(0.0, min(1.0, confidence)), 2)
