"""Ollama adapter - implements LLMPort with circuit breaker protection."""

import logging

import httpx
from ollama import AsyncClient, ResponseError

from src.domain.errors import CompletionBackendError
from src.domain.ports.config import OllamaConfig
from src.domain.ports.llm import LLMMessage, LLMResponse
from src.infrastructure.llm.reasoning_parser import split_reasoning
from src.infrastructure.resilience import CircuitBreakerConfig, CircuitOpenError, get_circuit_breaker

logger = logging.getLogger(__name__)

# Fail fast when the host is down; read timeout comes from config.
DEFAULT_CONNECT_TIMEOUT = 5.0


class OllamaAdapter:
    """Ollama implementation of LLMPort."""

    def __init__(self, config: OllamaConfig) -> None:
        self._config = config
        read_timeout = float(config.timeout) if config.timeout else 120.0
        timeout = httpx.Timeout(
            connect=DEFAULT_CONNECT_TIMEOUT,
            read=read_timeout,
            write=read_timeout,
            pool=30.0,
        )
        self._client = AsyncClient(host=config.host, timeout=timeout)
        self._breaker = get_circuit_breaker(
            "ollama",
            CircuitBreakerConfig(failure_threshold=5, recovery_timeout=30.0, success_threshold=2),
        )

    def _ollama_options(self, temperature: float) -> dict:
        """Temperature plus optional num_ctx / num_predict from config."""
        opts: dict = {"temperature": temperature}
        if self._config.num_ctx is not None:
            opts["num_ctx"] = self._config.num_ctx
        if self._config.num_predict is not None:
            opts["num_predict"] = self._config.num_predict
        return opts

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response.

        Raises:
            CompletionBackendError: circuit open, transport failure, model error or empty output.

        """
        model = model or "qwen2.5-coder:7b"
        msg_dicts = [{"role": m.role, "content": m.content} for m in messages]
        try:
            response = await self._breaker.call(
                self._client.chat,
                model=model,
                messages=msg_dicts,
                options=self._ollama_options(temperature),
            )
        except CircuitOpenError as e:
            raise CompletionBackendError(f"Ollama temporarily unavailable: {e}") from e
        except ResponseError as e:
            raise CompletionBackendError(f"Ollama error {e.status_code}: {e.error}") from e
        except (httpx.HTTPError, ConnectionError) as e:
            raise CompletionBackendError(f"Ollama unreachable at {self._config.host}: {e}") from e

        raw = response.message.content if response.message else ""
        _, content = split_reasoning(raw or "")
        if not content.strip():
            raise CompletionBackendError("Received empty output from Ollama")
        return LLMResponse(content=content, model=response.model or model, done=True)

    async def is_available(self) -> bool:
        """Check if the Ollama server answers /api/tags."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self._config.host.rstrip('/')}/api/tags")
                return resp.status_code == 200
        except (httpx.HTTPError, OSError) as e:
            logger.debug("Ollama availability check failed: %s", e)
            return False

    async def list_models(self) -> list[str]:
        """List locally pulled models."""
        try:
            resp = await self._client.list()
        except (httpx.HTTPError, ConnectionError, ResponseError) as e:
            logger.debug("Ollama list_models failed: %s", e)
            return []
        # Newer clients expose 'model', older ones 'name'.
        names = (getattr(m, "model", None) or getattr(m, "name", None) for m in resp.models or [])
        return [n for n in names if n]
