"""Purchase date extraction from receipt text."""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

# Lines carrying one of these are tried before the rest of the text.
DATE_INDICATORS: list[re.Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"date\s*:",
        r"purchase\s*date\s*:",
        r"sale\s*date\s*:",
        r"trans(?:action)?\s*date\s*:",
        r"datum\b",
        r"rechnungsdatum",
        r"date\s+d'achat",
        r"fecha\s*:",
    )
]


class _ReceiptParserInfo(date_parser.parserinfo):
    MONTHS = [
        ("Jan", "January", "Januar", "Jänner", "Jaenner"),
        ("Feb", "February", "Februar", "Feber"),
        ("Mar", "March", "März", "Maerz", "Mrz"),
        ("Apr", "April"),
        ("May", "Mai"),
        ("Jun", "June", "Juni"),
        ("Jul", "July", "Juli"),
        ("Aug", "August"),
        ("Sep", "Sept", "September"),
        ("Oct", "October", "Okt", "Oktober"),
        ("Nov", "November"),
        ("Dec", "December", "Dez", "Dezember"),
    ]


_INFO = _ReceiptParserInfo()

_MONTH_NAMES = "|".join(
    sorted(
        (re.escape(name) for names in _ReceiptParserInfo.MONTHS for name in names),
        key=len,
        reverse=True,
    )
)

_ISO = re.compile(r"(?<!\d)(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?!\d)")
_NUMERIC = re.compile(r"(?<!\d)(\d{1,2})([-/.])(\d{1,2})\2(\d{4}|\d{2})(?!\d)")
_DAY_MONTH_YEAR = re.compile(
    r"(?<!\d)(\d{1,2})\.?\s*(" + _MONTH_NAMES + r")\.?,?\s*(\d{4}|\d{2})(?!\d)",
    re.IGNORECASE,
)
_MONTH_DAY_YEAR = re.compile(
    r"(?<![a-zäöü])(" + _MONTH_NAMES + r")\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})(?!\d)",
    re.IGNORECASE,
)


def is_valid_receipt_date(candidate: date, today: date) -> bool:
    """A receipt date lies within ``[today - 1 year, today]``, both ends inclusive.

    Across a leap day one calendar year is 366 days, so the window is also
    capped at 365 days.
    """
    if candidate > today:
        return False
    if (today - candidate).days > 365:
        return False
    return candidate >= today - relativedelta(years=1)


def _make_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _year(raw: str) -> int:
    return _INFO.convertyear(int(raw), century_specified=len(raw) == 4)


def _candidates(line: str) -> list[tuple[int, list[date]]]:
    """All date readings found in ``line`` as (position, interpretations)."""
    found: list[tuple[int, list[date]]] = []

    for m in _ISO.finditer(line):
        d = _make_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if d is not None:
            found.append((m.start(), [d]))

    for m in _NUMERIC.finditer(line):
        first, sep, second, year = int(m.group(1)), m.group(2), int(m.group(3)), _year(m.group(4))
        month_first = _make_date(year, first, second)
        day_first = _make_date(year, second, first)
        # Dotted dates are almost always European (day first)
        ordered = [day_first, month_first] if sep == "." else [month_first, day_first]
        readings = [d for d in ordered if d is not None]
        if readings:
            found.append((m.start(), readings))

    for m in _DAY_MONTH_YEAR.finditer(line):
        month = _INFO.month(m.group(2))
        if month is not None:
            d = _make_date(_year(m.group(3)), month, int(m.group(1)))
            if d is not None:
                found.append((m.start(), [d]))

    for m in _MONTH_DAY_YEAR.finditer(line):
        month = _INFO.month(m.group(1))
        if month is not None:
            d = _make_date(_year(m.group(3)), month, int(m.group(2)))
            if d is not None:
                found.append((m.start(), [d]))

    found.sort(key=lambda c: c[0])
    return found


class DateExtractor:
    """Find the purchase date on a receipt."""

    def __init__(self, clock: Callable[[], date] = date.today) -> None:
        self._clock = clock

    def detect(self, text: str) -> date | None:
        today = self._clock()
        lines = text.splitlines()

        indicated = [
            line for line in lines if any(p.search(line) for p in DATE_INDICATORS)
        ]
        for line in indicated:
            found = self._from_line(line, today)
            if found is not None:
                return found

        for line in lines:
            found = self._from_line(line, today)
            if found is not None:
                return found

        return None

    @staticmethod
    def _from_line(line: str, today: date) -> date | None:
        for _pos, readings in _candidates(line):
            for reading in readings:
                if is_valid_receipt_date(reading, today):
                    return reading
        return None
