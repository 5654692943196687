"""Gemini API vision client."""

from __future__ import annotations

import logging

from ..errors import ConfigurationError, VisionClientError
from . import VisionClient

logger = logging.getLogger(__name__)


class GeminiVisionClient(VisionClient):
    """Read receipts with Google Gemini's vision capability."""

    name = "gemini"

    def __init__(self, api_key: str = "", model: str = "gemini-2.0-flash") -> None:
        if not api_key:
            raise ConfigurationError(
                "Gemini API key is not set. "
                "Check the config file or the GEMINI_API_KEY environment variable."
            )
        self._api_key = api_key
        self._model = model

    async def complete(self, prompt: str, image_bytes: bytes, media_type: str) -> str:
        try:
            import google.generativeai as genai
            from google.api_core import exceptions as google_exceptions
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install 'pricey-ocr[gemini]'"
            ) from None

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model)

        logger.info(
            "Sending receipt to Gemini: model=%s image_bytes=%d",
            self._model,
            len(image_bytes),
        )
        try:
            response = await model.generate_content_async(
                [{"mime_type": media_type, "data": image_bytes}, prompt],
                generation_config={"response_mime_type": "application/json"},
            )
        except google_exceptions.GoogleAPIError as e:
            raise VisionClientError(f"Gemini API error: {e}") from e

        try:
            text = response.text
        except ValueError as e:
            # blocked or candidate-less responses have no text accessor
            raise VisionClientError(f"Gemini returned no text: {e}") from e
        if not text:
            raise VisionClientError("Gemini returned an empty response")
        return text
