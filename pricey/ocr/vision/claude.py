"""Claude API vision client."""

from __future__ import annotations

import base64
import logging

from ..errors import ConfigurationError, VisionClientError
from . import VisionClient

logger = logging.getLogger(__name__)


def _import_anthropic():
    try:
        import anthropic
    except ImportError:
        raise ImportError(
            "anthropic SDK is required: pip install anthropic"
        ) from None
    return anthropic


class ClaudeVisionClient(VisionClient):
    """Read receipts with Claude's vision capability."""

    name = "claude"

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 2000,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError(
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._client = None

    def _get_client(self):
        if self._client is None:
            anthropic = _import_anthropic()

            # Retries belong to the job orchestrator, not the SDK
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def complete(self, prompt: str, image_bytes: bytes, media_type: str) -> str:
        anthropic = _import_anthropic()

        client = self._get_client()
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": media_type,
                    "data": base64.standard_b64encode(image_bytes).decode(),
                },
            },
            {"type": "text", "text": prompt},
        ]

        logger.info(
            "Sending receipt to Claude: model=%s image_bytes=%d",
            self._model,
            len(image_bytes),
        )
        try:
            response = await client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIError as e:
            raise VisionClientError(f"Claude API error: {e}") from e

        if not response.content:
            raise VisionClientError("Claude returned an empty response")
        return response.content[0].text
