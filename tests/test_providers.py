"""Tests for the heuristic provider and the provider factory."""

from datetime import date
from decimal import Decimal

import pytest

from pricey.ocr.catalog import StoreCatalog, StoreEntry
from pricey.ocr.config import ExtractionConfig, PipelineConfig
from pricey.ocr.errors import ConfigurationError
from pricey.ocr.providers import ExtractionProvider, create_provider
from pricey.ocr.providers.heuristic import HeuristicProvider
from pricey.ocr.providers.vision_model import VisionModelProvider
from pricey.ocr.reconcile import reconcile

TODAY = date(2026, 10, 17)

SAMPLE_RECEIPT = """\
WALMART SUPERCENTER
Store #1234
123 Main St
Date: 10/15/2026
Milk 2% Gallon $3.99
2 @ Bananas $1.50
Bread Whole Wheat $2.49
Eggs Large Dozen $4.29
Subtotal $13.77
Tax $0.55
Total $14.32
Thank you for shopping
"""

GERMAN_RECEIPT = """\
BILLA AG
Filiale 1234 Wien
Datum: 12.10.2026
Vollmilch 1,49
Semmel 0,35
SUMME EUR 1,84
Danke fuer Ihren Einkauf
"""


@pytest.fixture
def provider():
    return HeuristicProvider(clock=lambda: TODAY)


class TestHeuristicProvider:
    def test_is_extraction_provider(self, provider):
        assert isinstance(provider, ExtractionProvider)
        assert provider.name == "heuristic"
        assert provider.requires_text is True

    @pytest.mark.asyncio
    async def test_full_receipt(self, provider):
        receipt = await provider.extract(b"", SAMPLE_RECEIPT)
        assert receipt.store_name == "Walmart"
        assert receipt.purchase_date == date(2026, 10, 15)
        assert receipt.total_amount == Decimal("14.32")
        assert receipt.currency == "USD"
        assert [i.name for i in receipt.items] == [
            "Milk 2% Gallon",
            "Bananas",
            "Bread Whole Wheat",
            "Eggs Large Dozen",
        ]
        assert receipt.items[1].quantity == 2
        assert receipt.raw_text == SAMPLE_RECEIPT
        assert 0.9 < receipt.confidence <= 1.0
        assert reconcile(receipt.total_amount, receipt.items)

    @pytest.mark.asyncio
    async def test_german_receipt(self, provider):
        receipt = await provider.extract(b"", GERMAN_RECEIPT)
        assert receipt.store_name == "Billa"
        assert receipt.purchase_date == date(2026, 10, 12)
        assert receipt.total_amount == Decimal("1.84")
        assert receipt.currency == "EUR"
        assert [i.name for i in receipt.items] == ["Vollmilch", "Semmel"]

    @pytest.mark.asyncio
    async def test_without_text_returns_empty(self, provider):
        receipt = await provider.extract(b"\xff\xd8")
        assert receipt.is_empty
        assert receipt.confidence == 0.0

    @pytest.mark.asyncio
    async def test_blank_text_returns_empty(self, provider):
        receipt = await provider.extract(b"", "   \n  ")
        assert receipt.is_empty

    def test_deterministic(self, provider):
        first = provider.extract_text(SAMPLE_RECEIPT)
        second = provider.extract_text(SAMPLE_RECEIPT)
        assert first == second

    def test_ocr_confidence_scales_result(self, provider):
        full = provider.extract_text(SAMPLE_RECEIPT)
        scaled = provider.extract_text(SAMPLE_RECEIPT, text_confidence=0.5)
        assert scaled.confidence == pytest.approx(full.confidence * 0.5, abs=0.01)

    def test_partial_receipt_has_lower_confidence(self, provider):
        partial = provider.extract_text("Total $5.00")
        assert partial.total_amount == Decimal("5.00")
        assert partial.store_name is None
        assert partial.confidence == pytest.approx(0.3)

    def test_default_currency_from_config(self):
        provider = HeuristicProvider(
            config=ExtractionConfig(default_currency="EUR"), clock=lambda: TODAY
        )
        assert provider.extract_text("Milk 3.99").currency == "EUR"

    def test_custom_catalog(self):
        catalog = StoreCatalog([StoreEntry("Corner Shop", frozenset({"corner shop"}))])
        provider = HeuristicProvider(catalog=catalog, clock=lambda: TODAY)
        assert provider.extract_text("CORNER SHOP\nMilk $1.00").store_name == "Corner Shop"


class TestCreateProvider:
    def test_heuristic(self):
        provider = create_provider(PipelineConfig(provider="heuristic"))
        assert isinstance(provider, HeuristicProvider)

    def test_heuristic_with_catalog_file(self, tmp_path):
        path = tmp_path / "stores.toml"
        path.write_text(
            '[[stores]]\nname = "Corner Shop"\naliases = ["corner shop"]\n',
            encoding="utf-8",
        )
        config = PipelineConfig(provider="heuristic")
        config.extraction.catalog_path = str(path)

        provider = create_provider(config)
        assert provider.extract_text("CORNER SHOP").store_name == "Corner Shop"

    def test_vision_with_ollama(self):
        config = PipelineConfig(provider="vision")
        config.vision.backend = "ollama"
        provider = create_provider(config)
        assert isinstance(provider, VisionModelProvider)
        assert provider.client.name == "ollama"

    def test_vision_without_api_key(self):
        config = PipelineConfig(provider="vision")
        config.vision.backend = "claude"
        config.vision.claude.api_key = ""
        with pytest.raises(ConfigurationError, match="API key"):
            create_provider(config)

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unknown extraction provider"):
            create_provider(PipelineConfig(provider="magic"))
