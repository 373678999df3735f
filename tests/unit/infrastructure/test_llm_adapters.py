"""Tests for completion backend adapters (Ollama, OpenAI-compatible)."""

import httpx
import pytest
from ollama import ResponseError
from unittest.mock import AsyncMock, MagicMock, patch

from src.domain.errors import CompletionBackendError
from src.domain.ports.config import OllamaConfig, OpenAICompatibleConfig
from src.domain.ports.llm import LLMMessage
from src.infrastructure.llm.ollama import OllamaAdapter
from src.infrastructure.llm.openai_compatible import OpenAICompatibleAdapter
from src.infrastructure.resilience import CircuitState, get_circuit_breaker, reset_all_breakers

MESSAGES = [LLMMessage(role="system", content="rules"), LLMMessage(role="user", content="Hi")]


@pytest.fixture(autouse=True)
def _fresh_breakers():
    reset_all_breakers()
    yield
    reset_all_breakers()


def _chat_response(content: str, model: str = "qwen2.5-coder:7b"):
    response = MagicMock()
    response.message = MagicMock(content=content)
    response.model = model
    return response


class TestOllamaAdapter:
    """Tests for OllamaAdapter."""

    @pytest.fixture
    def adapter(self):
        return OllamaAdapter(OllamaConfig(host="http://localhost:11434", timeout=30, num_ctx=8192))

    @pytest.mark.asyncio
    async def test_generate_calls_client(self, adapter):
        """Generate passes model, messages and options to the client."""
        adapter._client.chat = AsyncMock(return_value=_chat_response("Hello!"))

        result = await adapter.generate(MESSAGES, model="llama3", temperature=0.2)

        assert result.content == "Hello!"
        kwargs = adapter._client.chat.call_args.kwargs
        assert kwargs["model"] == "llama3"
        assert kwargs["messages"][0] == {"role": "system", "content": "rules"}
        assert kwargs["options"] == {"temperature": 0.2, "num_ctx": 8192}

    @pytest.mark.asyncio
    async def test_generate_strips_reasoning(self, adapter):
        adapter._client.chat = AsyncMock(return_value=_chat_response("<think>plan</think>answer"))
        result = await adapter.generate(MESSAGES)
        assert result.content == "answer"

    @pytest.mark.asyncio
    async def test_empty_output_raises(self, adapter):
        adapter._client.chat = AsyncMock(return_value=_chat_response("   "))
        with pytest.raises(CompletionBackendError, match="empty"):
            await adapter.generate(MESSAGES)

    @pytest.mark.asyncio
    async def test_model_error_maps_to_backend_error(self, adapter):
        adapter._client.chat = AsyncMock(side_effect=ResponseError("model not found", 404))
        with pytest.raises(CompletionBackendError, match="404"):
            await adapter.generate(MESSAGES)

    @pytest.mark.asyncio
    async def test_connection_refused_maps_to_backend_error(self, adapter):
        adapter._client.chat = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(CompletionBackendError, match="unreachable"):
            await adapter.generate(MESSAGES)

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(self, adapter):
        """Five failures open the breaker; the next call never reaches the client."""
        adapter._client.chat = AsyncMock(side_effect=ConnectionError("refused"))
        for _ in range(5):
            with pytest.raises(CompletionBackendError):
                await adapter.generate(MESSAGES)

        assert get_circuit_breaker("ollama").state == CircuitState.OPEN
        with pytest.raises(CompletionBackendError, match="temporarily unavailable"):
            await adapter.generate(MESSAGES)
        assert adapter._client.chat.await_count == 5

    @pytest.mark.asyncio
    async def test_list_models(self, adapter):
        listing = MagicMock()
        listing.models = [MagicMock(model="qwen2.5-coder:7b"), MagicMock(model="llama3:8b")]
        adapter._client.list = AsyncMock(return_value=listing)
        assert await adapter.list_models() == ["qwen2.5-coder:7b", "llama3:8b"]

    @pytest.mark.asyncio
    async def test_list_models_unreachable(self, adapter):
        adapter._client.list = AsyncMock(side_effect=ConnectionError("refused"))
        assert await adapter.list_models() == []

    @pytest.mark.asyncio
    async def test_is_available_false_on_connect_error(self, adapter):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=httpx.ConnectError("refused")
            )
            assert await adapter.is_available() is False


class TestOpenAICompatibleAdapter:
    """Tests for OpenAICompatibleAdapter (httpx MockTransport)."""

    @staticmethod
    def _adapter(handler, **overrides) -> OpenAICompatibleAdapter:
        config = OpenAICompatibleConfig(base_url="http://llm.test/v1", api_key="sk-test", **overrides)
        adapter = OpenAICompatibleAdapter(config)
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), headers=adapter._headers)
        adapter._get_client = lambda: client
        return adapter

    @pytest.mark.asyncio
    async def test_generate_posts_chat_completion(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = request.read()
            return httpx.Response(200, json={"model": "m1", "choices": [{"message": {"content": "done"}}]})

        adapter = self._adapter(handler, max_tokens=1024)
        result = await adapter.generate(MESSAGES, model="m1", temperature=0.5)

        assert result.content == "done"
        assert result.model == "m1"
        assert seen["url"] == "http://llm.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert b'"max_tokens":1024' in seen["body"].replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        adapter = self._adapter(lambda request: httpx.Response(429, text="rate limited"))
        with pytest.raises(CompletionBackendError, match="429"):
            await adapter.generate(MESSAGES)

    @pytest.mark.asyncio
    async def test_empty_content_raises(self):
        adapter = self._adapter(
            lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "<think>hm</think>"}}]})
        )
        with pytest.raises(CompletionBackendError, match="empty"):
            await adapter.generate(MESSAGES)

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        adapter = self._adapter(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(CompletionBackendError, match="invalid JSON"):
            await adapter.generate(MESSAGES)

    @pytest.mark.asyncio
    async def test_connect_error_retried_then_raised(self):
        """Connect failures are retried up to connect_retries, then surface as backend errors."""
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        adapter = self._adapter(handler, connect_retries=2)
        with pytest.raises(CompletionBackendError, match="unreachable"):
            await adapter.generate(MESSAGES)
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_read_timeout_not_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ReadTimeout("slow", request=request)

        adapter = self._adapter(handler)
        with pytest.raises(CompletionBackendError, match="timed out"):
            await adapter.generate(MESSAGES)
        assert len(attempts) == 1
