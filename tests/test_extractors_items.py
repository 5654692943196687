"""Tests for line item extraction and price patterns."""

from decimal import Decimal

import pytest

from pricey.ocr.extractors import ItemExtractor, find_price
from pricey.ocr.extractors.items import clean_item_name, parse_quantity, score_item


@pytest.fixture
def extractor():
    return ItemExtractor()


class TestFindPrice:
    @pytest.mark.parametrize(
        "line,expected,kind",
        [
            ("Milk $3.99", Decimal("3.99"), "symbol"),
            ("Brot € 2,49", Decimal("2.49"), "symbol"),
            ("Summe EUR 23,45", Decimal("23.45"), "symbol"),
            ("Apples 4.50", Decimal("4.50"), "decimal"),
            ("Apples 1.25 ea", Decimal("1.25"), "decimal"),
            ("Butter 2,19 EUR", Decimal("2.19"), "decimal"),
            ("Apfel 2 29", Decimal("2.29"), "spaced"),
            ("Banane 199", Decimal("1.99"), "cents"),
        ],
    )
    def test_patterns(self, line, expected, kind):
        match = find_price(line)
        assert match is not None
        assert match.price == expected
        assert match.kind == kind

    def test_no_price(self):
        assert find_price("Thank you for shopping") is None

    def test_out_of_range_rejected(self):
        assert find_price("Gold bar $12500.00") is None
        assert find_price("Free sample $0.00") is None


class TestItemExtractor:
    def test_simple_item(self, extractor):
        items = extractor.detect("Milk 2% Gallon $3.99")
        assert len(items) == 1
        assert items[0].name == "Milk 2% Gallon"
        assert items[0].price == Decimal("3.99")
        assert items[0].quantity == 1

    def test_quantity_prefix(self, extractor):
        items = extractor.detect("2 @ Bananas $1.50")
        assert len(items) == 1
        assert items[0].name == "Bananas"
        assert items[0].price == Decimal("1.50")
        assert items[0].quantity == 2
        assert items[0].line_total == Decimal("3.00")

    def test_quantity_label(self, extractor):
        items = extractor.detect("Joghurt Natur Menge: 3 1,29")
        assert items[0].quantity == 3
        assert items[0].name == "Joghurt Natur"

    def test_article_number_stripped(self, extractor):
        items = extractor.detect("12-345 Vollmilch 3.5% 1,49")
        assert items[0].name == "Vollmilch 3.5%"

    def test_skips_summary_lines(self, extractor):
        text = "\n".join(
            [
                "Subtotal $10.00",
                "Tax $0.80",
                "TOTAL $10.80",
                "Cash $20.00",
                "Change $9.20",
                "MwSt 20% 1,60",
                "Summe 9,60",
                "Thank you!",
                "-----------",
            ]
        )
        assert extractor.detect(text) == []

    def test_orders_by_line_number(self, extractor):
        text = "WALMART\nMilk $3.99\n\nBread $2.49\nTotal $6.48"
        items = extractor.detect(text)
        assert [i.name for i in items] == ["Milk", "Bread"]
        assert [i.line_number for i in items] == [1, 3]

    def test_short_name_rejected(self, extractor):
        assert extractor.detect("X $3.99") == []

    def test_malformed_text_does_not_raise(self, extractor):
        assert extractor.detect("$$$ ... @@@ \x00 ¤¤") == []


class TestQuantity:
    @pytest.mark.parametrize(
        "line,expected",
        [
            ("2 @ Bananas $1.50", 2),
            ("3 x Yogurt 0.99", 3),
            ("4× Semmel 0,35", 4),
            ("Cola Qty: 6 $1.25", 6),
            ("Eier Anzahl 10 0,30", 10),
            ("150 x Screws $0.05", 1),
            ("Bread $2.49", 1),
        ],
    )
    def test_parse_quantity(self, line, expected):
        assert parse_quantity(line) == expected


class TestNameCleaning:
    def test_strips_quantity_prefix(self):
        assert clean_item_name("2 x Yogurt ") == "Yogurt"

    def test_collapses_whitespace(self):
        assert clean_item_name("Whole   Wheat    Bread  ") == "Whole Wheat Bread"

    def test_keeps_trailing_x_in_word(self):
        assert clean_item_name("Kleenex ") == "Kleenex"


class TestScoreItem:
    def test_currency_symbol_raises_confidence(self):
        with_symbol = score_item("Bread Loaf $2.49", "Bread Loaf", 2.49)
        without_symbol = score_item("Bread Loaf 2.49", "Bread Loaf", 2.49)
        assert with_symbol > without_symbol
        assert with_symbol == pytest.approx(without_symbol + 0.2)

    def test_full_score(self):
        assert score_item("Bread Loaf $2.49", "Bread Loaf", 2.49) == pytest.approx(0.9)

    def test_unusual_characters_penalized(self):
        assert score_item("Bread {Loaf} 2.49", "Bread {Loaf}", 2.49) == pytest.approx(0.6)

    def test_clamped(self):
        assert 0.0 <= score_item("!!", "!!", 9000.0) <= 1.0
