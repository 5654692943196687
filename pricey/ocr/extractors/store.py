"""Store detection with exact alias and fuzzy matching."""

from __future__ import annotations

import re

from ..catalog import StoreCatalog

# Characters OCR commonly confuses; both sides of a comparison go through
# the same mapping so "C0STCO" and "costco" compare equal.
_OCR_CONFUSIONS = str.maketrans({"0": "o", "1": "l", "|": "l", "i": "l"})
_NON_ALNUM = re.compile(r"[^0-9a-zäöüß]+")

# Aliases shorter than this only ever match exactly.
_MIN_FUZZY_LENGTH = 4

# Shorter windows must match the alias length; otherwise "bill" reaches the
# threshold against "billa" by dropping a letter.
_MIN_FUZZY_WINDOW = 5


def normalize(text: str) -> str:
    """Lowercase, fold OCR confusions, and reduce punctuation to single spaces."""
    lowered = text.lower().replace("'", "").replace("’", "")
    lowered = lowered.translate(_OCR_CONFUSIONS)
    return _NON_ALNUM.sub(" ", lowered).strip()


def levenshtein(a: str, b: str) -> int:
    """Edit distance between ``a`` and ``b``.

    Standard O(n*m) table, kept to two rows.
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    current = [0] * (len(b) + 1)
    for i, ca in enumerate(a, start=1):
        current[0] = i
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current[j] = min(
                previous[j] + 1,  # deletion
                current[j - 1] + 1,  # insertion
                previous[j - 1] + cost,  # substitution
            )
        previous, current = current, previous
    return previous[len(b)]


def similarity(a: str, b: str) -> float:
    """Similarity ratio ``1 - distance / max(len(a), len(b))``."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest


class StoreDetector:
    """Find the store name near the top of a receipt."""

    def __init__(
        self,
        catalog: StoreCatalog | None = None,
        *,
        search_lines: int = 10,
        threshold: float = 0.8,
    ) -> None:
        self._catalog = catalog or StoreCatalog()
        self._search_lines = search_lines
        self._threshold = threshold

        # (canonical name, normalized alias, alias without spaces, word regex)
        self._aliases: list[tuple[str, str, str, re.Pattern[str]]] = []
        for entry in self._catalog:
            for alias in sorted(entry.all_names):
                norm = normalize(alias)
                if not norm:
                    continue
                pattern = re.compile(r"(?<![0-9a-zäöüß])" + re.escape(norm) + r"(?![0-9a-zäöüß])")
                self._aliases.append((entry.name, norm, norm.replace(" ", ""), pattern))

    def detect(self, text: str) -> str | None:
        """Return the canonical store name, or None if nothing matches."""
        lines = text.splitlines()[: self._search_lines]

        for line in lines:
            norm = normalize(line)
            if not norm:
                continue

            exact = self._match_exact(norm)
            if exact is not None:
                return exact

            fuzzy = self._match_fuzzy(norm)
            if fuzzy is not None:
                return fuzzy

        return None

    def _match_exact(self, norm_line: str) -> str | None:
        squashed = norm_line.replace(" ", "")
        for name, _alias, alias_squashed, pattern in self._aliases:
            if pattern.search(norm_line):
                return name
            # "WAL MART" / "WALMART" style spacing differences
            if len(alias_squashed) >= _MIN_FUZZY_LENGTH and squashed == alias_squashed:
                return name
        return None

    def _match_fuzzy(self, norm_line: str) -> str | None:
        tokens = norm_line.split()
        best_name: str | None = None
        best_score = 0.0

        for name, alias, alias_squashed, _pattern in self._aliases:
            if len(alias_squashed) < _MIN_FUZZY_LENGTH:
                continue
            width = len(alias.split())
            for size in range(max(1, width - 1), width + 2):
                for start in range(0, max(1, len(tokens) - size + 1)):
                    window = "".join(tokens[start : start + size])
                    if len(window) < _MIN_FUZZY_WINDOW and len(window) != len(alias_squashed):
                        continue
                    # Cheap length filter before running the table
                    longest = max(len(window), len(alias_squashed))
                    if abs(len(window) - len(alias_squashed)) > longest * (1 - self._threshold):
                        continue
                    score = similarity(window, alias_squashed)
                    if score > best_score:
                        best_name, best_score = name, score

        if best_name is not None and best_score >= self._threshold:
            return best_name
        return None
