"""Tests for vision clients (mocked API calls)."""

import base64
import json
import sys
from unittest.mock import AsyncMock, MagicMock, PropertyMock, patch

import httpx
import pytest

from pricey.ocr.config import VisionConfig
from pricey.ocr.errors import ConfigurationError, VisionClientError
from pricey.ocr.vision import VisionClient, create_client
from pricey.ocr.vision.claude import ClaudeVisionClient
from pricey.ocr.vision.gemini import GeminiVisionClient
from pricey.ocr.vision.ollama import OllamaVisionClient
from pricey.ocr.vision.prompt import RECEIPT_PROMPT, RESPONSE_SCHEMA

JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


class TestCreateClient:
    def test_create_claude_client(self):
        config = VisionConfig(backend="claude")
        config.claude.api_key = "sk-test"
        client = create_client(config)
        assert isinstance(client, ClaudeVisionClient)
        assert isinstance(client, VisionClient)

    def test_create_gemini_client(self):
        config = VisionConfig(backend="gemini")
        config.gemini.api_key = "gm-test"
        assert isinstance(create_client(config), GeminiVisionClient)

    def test_create_ollama_client(self):
        client = create_client(VisionConfig(backend="ollama"))
        assert isinstance(client, OllamaVisionClient)

    def test_create_unknown_client(self):
        with pytest.raises(ConfigurationError, match="Unknown vision backend"):
            create_client(VisionConfig(backend="unknown"))

    def test_claude_requires_api_key(self):
        with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
            create_client(VisionConfig(backend="claude"))

    def test_gemini_requires_api_key(self):
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            create_client(VisionConfig(backend="gemini"))


class TestClaudeVisionClient:
    @staticmethod
    def _mock_anthropic(response=None, error=None):
        mock_client = AsyncMock()
        if error is not None:
            mock_client.messages.create = AsyncMock(side_effect=error)
        else:
            mock_client.messages.create = AsyncMock(return_value=response)

        mock_anthropic = MagicMock()
        mock_anthropic.AsyncAnthropic.return_value = mock_client
        mock_anthropic.APIError = FakeAPIError
        return mock_anthropic, mock_client

    @pytest.mark.asyncio
    async def test_complete_mocked(self):
        response = MagicMock()
        response.content = [MagicMock(text='{"storeName": "Walmart"}')]
        mock_anthropic, mock_client = self._mock_anthropic(response=response)

        with patch.dict(sys.modules, {"anthropic": mock_anthropic}):
            client = ClaudeVisionClient(api_key="sk-test", timeout=12.0)
            text = await client.complete(RECEIPT_PROMPT, JPEG, "image/jpeg")

        assert text == '{"storeName": "Walmart"}'
        mock_anthropic.AsyncAnthropic.assert_called_once_with(
            api_key="sk-test", timeout=12.0, max_retries=0
        )
        kwargs = mock_client.messages.create.call_args.kwargs
        image_block, text_block = kwargs["messages"][0]["content"]
        assert image_block["source"]["media_type"] == "image/jpeg"
        assert base64.b64decode(image_block["source"]["data"]) == JPEG
        assert text_block["text"] == RECEIPT_PROMPT

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self):
        mock_anthropic, _ = self._mock_anthropic(error=FakeAPIError("overloaded"))

        with patch.dict(sys.modules, {"anthropic": mock_anthropic}):
            client = ClaudeVisionClient(api_key="sk-test")
            with pytest.raises(VisionClientError, match="overloaded"):
                await client.complete(RECEIPT_PROMPT, JPEG, "image/jpeg")

    @pytest.mark.asyncio
    async def test_empty_response(self):
        response = MagicMock()
        response.content = []
        mock_anthropic, _ = self._mock_anthropic(response=response)

        with patch.dict(sys.modules, {"anthropic": mock_anthropic}):
            client = ClaudeVisionClient(api_key="sk-test")
            with pytest.raises(VisionClientError, match="empty"):
                await client.complete(RECEIPT_PROMPT, JPEG, "image/jpeg")


class FakeAPIError(Exception):
    pass


class TestGeminiVisionClient:
    @pytest.mark.asyncio
    async def test_complete_mocked(self):
        mock_response = MagicMock()
        mock_response.text = '{"storeName": "Billa"}'

        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(return_value=mock_response)

        mock_genai = MagicMock()
        mock_genai.GenerativeModel.return_value = mock_model

        mock_google = MagicMock()
        mock_google.generativeai = mock_genai
        mock_exceptions = MagicMock()
        mock_exceptions.GoogleAPIError = FakeAPIError
        mock_api_core = MagicMock()
        mock_api_core.exceptions = mock_exceptions

        modules = {
            "google": mock_google,
            "google.generativeai": mock_genai,
            "google.api_core": mock_api_core,
            "google.api_core.exceptions": mock_exceptions,
        }
        with patch.dict(sys.modules, modules):
            client = GeminiVisionClient(api_key="gm-test", model="gemini-2.0-flash")
            text = await client.complete(RECEIPT_PROMPT, JPEG, "image/jpeg")

        assert text == '{"storeName": "Billa"}'
        mock_genai.configure.assert_called_once_with(api_key="gm-test")
        mock_genai.GenerativeModel.assert_called_once_with("gemini-2.0-flash")
        parts = mock_model.generate_content_async.call_args.args[0]
        assert parts[0] == {"mime_type": "image/jpeg", "data": JPEG}
        assert parts[1] == RECEIPT_PROMPT

    @pytest.mark.asyncio
    async def test_blocked_response_wrapped(self):
        mock_response = MagicMock()
        type(mock_response).text = PropertyMock(
            side_effect=ValueError("response was blocked by safety filters")
        )

        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(return_value=mock_response)
        mock_genai = MagicMock()
        mock_genai.GenerativeModel.return_value = mock_model
        mock_google = MagicMock()
        mock_google.generativeai = mock_genai
        mock_exceptions = MagicMock()
        mock_exceptions.GoogleAPIError = FakeAPIError
        mock_api_core = MagicMock()
        mock_api_core.exceptions = mock_exceptions

        modules = {
            "google": mock_google,
            "google.generativeai": mock_genai,
            "google.api_core": mock_api_core,
            "google.api_core.exceptions": mock_exceptions,
        }
        with patch.dict(sys.modules, modules):
            client = GeminiVisionClient(api_key="gm-test")
            with pytest.raises(VisionClientError, match="no text"):
                await client.complete(RECEIPT_PROMPT, JPEG, "image/jpeg")


class TestOllamaVisionClient:
    @staticmethod
    def _client(handler, **kwargs):
        return OllamaVisionClient(
            base_url="http://ollama.test:11434/",
            model="llava",
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    @pytest.mark.asyncio
    async def test_complete(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": '{"storeName": "Spar"}'})

        client = self._client(handler, response_schema=RESPONSE_SCHEMA)
        text = await client.complete(RECEIPT_PROMPT, JPEG, "image/jpeg")

        assert text == '{"storeName": "Spar"}'
        assert seen["url"] == "http://ollama.test:11434/api/generate"
        body = seen["body"]
        assert body["model"] == "llava"
        assert body["stream"] is False
        assert body["format"] == RESPONSE_SCHEMA
        assert base64.b64decode(body["images"][0]) == JPEG
        assert body["options"]["temperature"] == 0.1
        assert body["options"]["top_k"] == 40

    @pytest.mark.asyncio
    async def test_plain_json_format_without_schema(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "{}"})

        await self._client(handler).complete(RECEIPT_PROMPT, JPEG, "image/jpeg")
        assert seen["body"]["format"] == "json"

    @pytest.mark.asyncio
    async def test_http_error(self):
        def handler(request):
            return httpx.Response(500, text="model not loaded")

        with pytest.raises(VisionClientError, match="500"):
            await self._client(handler).complete(RECEIPT_PROMPT, JPEG, "image/jpeg")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(VisionClientError, match="request failed"):
            await self._client(handler).complete(RECEIPT_PROMPT, JPEG, "image/jpeg")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>proxy error</html>")

        with pytest.raises(VisionClientError, match="non-JSON"):
            await self._client(handler).complete(RECEIPT_PROMPT, JPEG, "image/jpeg")

    @pytest.mark.asyncio
    async def test_empty_response(self):
        def handler(request):
            return httpx.Response(200, json={"response": ""})

        with pytest.raises(VisionClientError, match="empty"):
            await self._client(handler).complete(RECEIPT_PROMPT, JPEG, "image/jpeg")

    @pytest.mark.asyncio
    async def test_health_check(self):
        def handler(request):
            assert request.url.path == "/api/tags"
            return httpx.Response(200, json={"models": []})

        assert await self._client(handler).health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert await self._client(handler).health_check() is False
