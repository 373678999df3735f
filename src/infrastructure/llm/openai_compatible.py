"""OpenAI-compatible adapter - Groq, LM Studio, vLLM."""

import logging

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.domain.errors import CompletionBackendError
from src.domain.ports.config import OpenAICompatibleConfig
from src.domain.ports.llm import LLMMessage, LLMResponse
from src.infrastructure.llm.reasoning_parser import split_reasoning

logger = logging.getLogger(__name__)

# Failures where the request never reached the server; safe to resend.
_CONNECT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


class OpenAICompatibleAdapter:
    """Implements LLMPort via /chat/completions."""

    def __init__(self, config: OpenAICompatibleConfig) -> None:
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        if config.api_key:
            self._headers["Authorization"] = f"Bearer {config.api_key}"
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Shared client for completions; recreated after close()."""
        client = self._client
        if client is None or client.is_closed:
            client = self._client = httpx.AsyncClient(timeout=self._config.timeout, headers=self._headers)
        return client

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None and not client.is_closed:
            await client.aclose()

    def _chat_body(self, model: str, messages: list[LLMMessage], temperature: float) -> dict:
        body: dict = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "stream": False,
        }
        if self._config.max_tokens is not None:
            body["max_tokens"] = self._config.max_tokens
        return body

    async def _post(self, body: dict) -> httpx.Response:
        client = self._get_client()
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, self._config.connect_retries)),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(_CONNECT_ERRORS),
            reraise=True,
        ):
            with attempt:
                return await client.post(f"{self._base_url}/chat/completions", json=body)
        raise CompletionBackendError("No attempt was made")  # unreachable with stop >= 1

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response.

        Raises:
            CompletionBackendError: transport failure, timeout, error status or empty output.

        """
        model = model or "default"
        body = self._chat_body(model, messages, temperature)
        try:
            resp = await self._post(body)
        except httpx.TimeoutException as e:
            raise CompletionBackendError(f"Completion backend timed out: {e}") from e
        except httpx.HTTPError as e:
            raise CompletionBackendError(f"Completion backend unreachable: {e}") from e

        if resp.status_code >= 400:
            logger.error("LLM API error %s: %s", resp.status_code, resp.text[:500])
            raise CompletionBackendError(f"Completion backend error {resp.status_code}: {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise CompletionBackendError("Completion backend returned invalid JSON") from e
        choice = (data.get("choices") or [{}])[0]
        raw = (choice.get("message") or {}).get("content") or ""
        _, content = split_reasoning(raw)
        if not content.strip():
            raise CompletionBackendError("Received empty output from completion backend")
        return LLMResponse(content=content, model=data.get("model") or model, done=True)

    async def _models_probe(self) -> httpx.Response | None:
        """GET /models with a short timeout. None when the endpoint cannot be reached."""
        try:
            async with httpx.AsyncClient(timeout=5.0, headers=self._headers) as client:
                return await client.get(f"{self._base_url}/models")
        except (httpx.HTTPError, OSError) as e:
            logger.debug("GET %s/models failed: %s", self._base_url, e)
            return None

    async def is_available(self) -> bool:
        resp = await self._models_probe()
        return resp is not None and resp.status_code == 200

    async def list_models(self) -> list[str]:
        """Model ids from /models; [] when unreachable or the answer is unusable."""
        resp = await self._models_probe()
        if resp is None or resp.status_code != 200:
            return []
        try:
            entries = resp.json().get("data") or []
        except (ValueError, AttributeError):
            logger.debug("Unexpected /models payload from %s", self._base_url)
            return []
        return [m["id"] for m in entries if isinstance(m, dict) and m.get("id")]
