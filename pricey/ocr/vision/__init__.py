"""Vision model clients and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ..errors import ConfigurationError

if TYPE_CHECKING:
    from ..config import VisionConfig


class VisionClient(ABC):
    """Sends one image plus an instruction to a vision model.

    Implementations return the model's raw text and raise
    ``VisionClientError`` when the request fails. They never retry.
    """

    name: str = "vision"

    @abstractmethod
    async def complete(self, prompt: str, image_bytes: bytes, media_type: str) -> str:
        ...

    async def health_check(self) -> bool:
        """Whether the backend is reachable. Defaults to True."""
        return True


def create_client(config: VisionConfig) -> VisionClient:
    """Create a vision client based on configuration."""
    backend_name = config.backend

    match backend_name:
        case "claude":
            from .claude import ClaudeVisionClient

            return ClaudeVisionClient(
                api_key=config.claude.api_key,
                model=config.claude.model,
                max_tokens=config.claude.max_tokens,
                timeout=config.request_timeout,
            )
        case "gemini":
            from .gemini import GeminiVisionClient

            return GeminiVisionClient(
                api_key=config.gemini.api_key,
                model=config.gemini.model,
            )
        case "ollama":
            from .ollama import OllamaVisionClient
            from .prompt import RESPONSE_SCHEMA

            return OllamaVisionClient(
                base_url=config.ollama.base_url,
                model=config.ollama.model,
                temperature=config.ollama.temperature,
                timeout=config.request_timeout,
                response_schema=RESPONSE_SCHEMA,
            )
        case _:
            raise ConfigurationError(
                f"Unknown vision backend: {backend_name!r} "
                f"(choose from claude / gemini / ollama)"
            )
