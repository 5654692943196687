"""Total amount extraction from receipt text."""

from __future__ import annotations

import re
from decimal import Decimal

from .prices import find_price

TOTAL_INDICATORS: list[re.Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"total",
        r"amount\s*due",
        r"balance\s*due",
        r"grand\s*total",
        r"total\s*amount",
        r"summe",
        r"gesamt",
        r"zu\s*zahlen",
        r"betrag",
        r"montant",
    )
]


class TotalExtractor:
    """Find the receipt total, scanning from the bottom of the text up."""

    def detect(self, text: str) -> Decimal | None:
        for raw in reversed(text.splitlines()):
            line = raw.strip()
            if not line:
                continue
            if not any(p.search(line) for p in TOTAL_INDICATORS):
                continue
            match = find_price(line)
            if match is not None:
                return match.price
        return None
