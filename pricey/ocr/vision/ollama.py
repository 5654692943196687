"""Ollama vision client (LLaVA, Llama 3.2 Vision and friends) over HTTP."""

from __future__ import annotations

import base64
import logging

import httpx

from ..errors import VisionClientError
from . import VisionClient

logger = logging.getLogger(__name__)


class OllamaVisionClient(VisionClient):
    """Call a local Ollama server's ``/api/generate`` endpoint."""

    name = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llava",
        temperature: float = 0.1,
        timeout: float = 30.0,
        *,
        response_schema: dict | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._temperature = temperature
        self._timeout = timeout
        self._response_schema = response_schema
        self._transport = transport

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout if timeout is not None else self._timeout,
            transport=self._transport,
        )

    async def complete(self, prompt: str, image_bytes: bytes, media_type: str) -> str:
        body = {
            "model": self._model,
            "prompt": prompt,
            "images": [base64.b64encode(image_bytes).decode()],
            "stream": False,
            "format": self._response_schema or "json",
            "options": {
                "temperature": self._temperature,
                "top_p": 0.9,
                "top_k": 40,
            },
        }

        logger.info(
            "Sending receipt to Ollama: url=%s model=%s image_bytes=%d",
            self._base_url,
            self._model,
            len(image_bytes),
        )
        try:
            async with self._client() as client:
                resp = await client.post("/api/generate", json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise VisionClientError(
                f"Ollama API error: {e.response.status_code} {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise VisionClientError(f"Ollama request failed: {e}") from e
        except ValueError as e:
            raise VisionClientError("Ollama returned a non-JSON body") from e

        text = data.get("response", "") if isinstance(data, dict) else ""
        if not text:
            raise VisionClientError("Ollama returned an empty response")
        return text

    async def health_check(self) -> bool:
        try:
            async with self._client(timeout=5.0) as client:
                resp = await client.get("/api/tags")
        except httpx.HTTPError:
            logger.warning("Ollama health check failed: %s", self._base_url)
            return False
        return resp.status_code == 200
