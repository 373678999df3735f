"""LLM Port - interface for completion backends."""

from typing import Protocol

from pydantic import BaseModel

from src.domain.entities.conversation import Conversation


class LLMMessage(BaseModel):
    """Single message in a chat request."""

    role: str  # "system" | "user" | "assistant"
    content: str


class LLMResponse(BaseModel):
    """Response from the backend (non-streaming)."""

    content: str
    model: str
    done: bool = True


class LLMPort(Protocol):
    """Interface for completion backends (Groq / OpenAI-compatible, Ollama).

    Implementations raise CompletionBackendError on transport, timeout or
    non-success failures.
    """

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response."""
        ...

    async def is_available(self) -> bool:
        """Check if the backend is reachable."""
        ...

    async def list_models(self) -> list[str]:
        """List available models."""
        ...


def conversation_to_messages(conversation: Conversation, system_prompt: str | None = None) -> list[LLMMessage]:
    """One chat message per turn, parts joined by blank lines, behind an optional system prompt."""
    messages = [LLMMessage(role="system", content=system_prompt)] if system_prompt else []
    messages.extend(LLMMessage(role=t.role.value, content=t.text) for t in conversation.turns)
    return messages
