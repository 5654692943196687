"""Currency detection from symbols and ISO codes on a receipt."""

from __future__ import annotations

import re

# Checked in order; codes before bare symbols so "CHF" beats a stray "$".
_CURRENCY_MARKERS: list[tuple[str, re.Pattern[str]]] = [
    ("CHF", re.compile(r"\bCHF\b|\bSFr\.?", re.IGNORECASE)),
    ("EUR", re.compile(r"\bEUR\b|€", re.IGNORECASE)),
    ("GBP", re.compile(r"\bGBP\b|£", re.IGNORECASE)),
    ("JPY", re.compile(r"\bJPY\b|¥|円", re.IGNORECASE)),
    ("USD", re.compile(r"\bUSD\b|\$", re.IGNORECASE)),
]


def detect_currency(text: str, default: str = "USD") -> str:
    """Return the ISO code of the first currency marker found, else ``default``."""
    for code, pattern in _CURRENCY_MARKERS:
        if pattern.search(text):
            return code
    return default
