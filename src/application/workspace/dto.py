"""Workspace DTOs."""

from typing import Any

from pydantic import BaseModel, Field

from src.domain.entities.workspace_events import WorkspaceEventType
from src.domain.entities.workspace_session import SessionStage, WorkspaceSession


class StartRequest(BaseModel):
    """Request to generate a new project from a prompt."""

    prompt: str = Field(..., min_length=1, max_length=50_000)


class LoadRequest(BaseModel):
    """Request to reopen a stored session."""

    session_id: str = Field(..., min_length=1, max_length=100)


class FollowUpRequest(BaseModel):
    """Modification request for a ready workspace."""

    prompt: str = Field(..., min_length=1, max_length=50_000)


class SaveRequest(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=200)


class SaveResponse(BaseModel):
    session_id: str


class WorkspaceSnapshot(BaseModel):
    """Observable state of one workspace."""

    workspace_id: str
    stage: SessionStage
    session: WorkspaceSession | None = None
    pending_user_turns: int = 0
    preview_url: str | None = None
    runtime_error: str | None = None
    error: str | None = None


class WorkspaceEvent(BaseModel):
    """SSE event for streaming round progress."""

    event_type: WorkspaceEventType
    workspace_id: str | None = None
    stage: SessionStage | None = None
    message: str | None = None
    payload: dict[str, Any] | None = None
