"""Workspace session - the unit of persistence, and its pipeline stages."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from src.domain.entities.conversation import Conversation
from src.domain.entities.file_tree import FileTreeNode, Forest
from src.domain.entities.steps import Step

TITLE_MAX_LEN = 50


class SessionStage(str, Enum):
    """Orchestrator states."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    AWAITING_CLASSIFICATION = "awaiting_classification"
    AWAITING_GENERATION = "awaiting_generation"
    PARSING = "parsing"
    BUILDING = "building"
    MOUNTING = "mounting"
    READY = "ready"
    SUBMITTING = "submitting"
    ERROR = "error"


class WorkspaceSession(BaseModel):
    """Prompt, generated tree, step log and conversation of one project."""

    id: str | None = None
    prompt: str
    title: str
    forest: list[FileTreeNode] = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)
    conversation: Conversation = Field(default_factory=Conversation)

    @classmethod
    def new(cls, prompt: str) -> "WorkspaceSession":
        return cls(prompt=prompt, title=make_title(prompt))

    def as_forest(self) -> Forest:
        return Forest.from_nodes(self.forest)


class SessionSummary(BaseModel):
    """Listing entry for an owner's stored sessions."""

    id: str
    title: str
    prompt: str
    created_at: datetime


def make_title(prompt: str) -> str:
    """Session title: first line of the prompt, clipped."""
    first_line = prompt.strip().splitlines()[0] if prompt.strip() else ""
    return first_line[:TITLE_MAX_LEN] or "Untitled project"
