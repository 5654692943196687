"""Extraction provider interface and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ..errors import ConfigurationError
from ..models import ExtractedReceipt

if TYPE_CHECKING:
    from ..catalog import StoreCatalog
    from ..config import PipelineConfig


class ExtractionProvider(ABC):
    """Turns a receipt image (and optionally its OCR text) into a receipt.

    Providers never raise for a receipt they cannot read; they return a
    zero-confidence empty ``ExtractedReceipt`` instead. Configuration
    problems surface from the constructor.
    """

    name: str = "provider"

    #: Whether ``extract`` needs OCR text alongside the image.
    requires_text: bool = False

    @abstractmethod
    async def extract(
        self,
        image_bytes: bytes,
        recognized_text: str | None = None,
        *,
        text_confidence: float | None = None,
    ) -> ExtractedReceipt:
        ...


def create_provider(
    config: PipelineConfig, catalog: StoreCatalog | None = None
) -> ExtractionProvider:
    """Create the extraction provider named in configuration.

    Called once at startup; every job in the process shares the result.
    """
    provider_name = config.provider

    match provider_name:
        case "heuristic":
            from ..catalog import StoreCatalog
            from .heuristic import HeuristicProvider

            if catalog is None and config.extraction.catalog_path:
                catalog = StoreCatalog.from_toml(config.extraction.catalog_path)
            return HeuristicProvider(catalog=catalog, config=config.extraction)
        case "vision":
            from ..vision import create_client
            from .vision_model import VisionModelProvider

            return VisionModelProvider(
                client=create_client(config.vision),
                request_timeout=config.vision.request_timeout,
                default_currency=config.extraction.default_currency,
            )
        case _:
            raise ConfigurationError(
                f"Unknown extraction provider: {provider_name!r} "
                f"(choose from heuristic / vision)"
            )
