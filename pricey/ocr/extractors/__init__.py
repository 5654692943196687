"""Heuristic field extractors that work on recognized receipt text.

All extractors are pure: they hold no mutable state and return ``None`` or
an empty list instead of raising when the text has nothing to offer.
"""

from .currency import detect_currency
from .dates import DateExtractor, is_valid_receipt_date
from .items import ItemExtractor
from .prices import find_price
from .store import StoreDetector, levenshtein, similarity
from .totals import TotalExtractor

__all__ = [
    "StoreDetector",
    "DateExtractor",
    "ItemExtractor",
    "TotalExtractor",
    "detect_currency",
    "find_price",
    "is_valid_receipt_date",
    "levenshtein",
    "similarity",
]
