"""Conversation with the completion backend - immutable, append-only."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ConversationTurn(BaseModel):
    """One turn; parts are ordered text segments (e.g. base payload, then request)."""

    model_config = ConfigDict(frozen=True)

    role: TurnRole
    parts: tuple[str, ...]

    @property
    def text(self) -> str:
        return "\n\n".join(p for p in self.parts if p)


class Conversation(BaseModel):
    """Ordered turns. append() returns a new Conversation and leaves this one as is."""

    model_config = ConfigDict(frozen=True)

    turns: tuple[ConversationTurn, ...] = ()

    def append(self, role: TurnRole, *parts: str) -> "Conversation":
        return Conversation(turns=(*self.turns, ConversationTurn(role=role, parts=tuple(parts))))

    def __len__(self) -> int:
        return len(self.turns)

    @property
    def last(self) -> ConversationTurn | None:
        return self.turns[-1] if self.turns else None

    def pending_user_turns(self) -> int:
        """User turns after the last assistant turn (awaiting a response)."""
        count = 0
        for turn in reversed(self.turns):
            if turn.role == TurnRole.ASSISTANT:
                break
            count += 1
        return count
