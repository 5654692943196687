"""Price patterns shared by the item and total extractors."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

MIN_PRICE = Decimal("0")
MAX_PRICE = Decimal("10000")

_SYMBOL = r"[$€£¥]"
_CURRENCY = r"(?:[$€£¥]|\b(?:usd|eur|gbp|chf)\b)"

# Tried in priority order; the first one that yields a price in range wins.
PRICE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    # $12.99, € 2,49, EUR 12.49
    ("symbol", re.compile(_CURRENCY + r"\s*(\d+[.,]\d{2})(?!\d)", re.IGNORECASE)),
    # 12.99 / 2,49 € / 3.50 ea at the end of the line
    (
        "decimal",
        re.compile(
            r"(\d+[.,]\d{2})\s*(?:ea|each)?\s*" + _CURRENCY + r"?\s*$", re.IGNORECASE
        ),
    ),
    # "2 29" -> 2.29 (space used as decimal separator)
    (
        "spaced",
        re.compile(
            r"(?<![\d.,])(\d+)\s+(\d{2,3})\s*" + _CURRENCY + r"?\s*$", re.IGNORECASE
        ),
    ),
    # "299" -> 2.99 (cents without separator)
    ("cents", re.compile(r"\b(\d{2,4})\s*$")),
]

_SYMBOL_PRICE = re.compile(_SYMBOL + r"\s*\d+[.,]?\d{2}|\d+[.,]\d{2}\s*" + _SYMBOL)


@dataclass(frozen=True)
class PriceMatch:
    price: Decimal
    start: int
    end: int
    kind: str


def _to_decimal(match: re.Match[str], kind: str) -> Decimal | None:
    try:
        if kind == "spaced":
            return Decimal(f"{match.group(1)}.{match.group(2)}")
        raw = match.group(1)
        if kind == "cents":
            return Decimal(raw) / 100
        return Decimal(raw.replace(",", "."))
    except InvalidOperation:
        return None


def find_price(line: str) -> PriceMatch | None:
    """Return the first valid price found in ``line``.

    A price is valid when it lies strictly between 0 and 10000.
    """
    for kind, pattern in PRICE_PATTERNS:
        match = pattern.search(line)
        if match is None:
            continue
        price = _to_decimal(match, kind)
        if price is not None and MIN_PRICE < price < MAX_PRICE:
            return PriceMatch(price=price, start=match.start(), end=match.end(), kind=kind)
    return None


def has_currency_symbol(line: str) -> bool:
    return _SYMBOL_PRICE.search(line) is not None
