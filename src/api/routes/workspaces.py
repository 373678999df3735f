"""Workspaces API - generate, follow up, inspect and save live workspaces."""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sse_starlette.sse import EventSourceResponse

from src.api.dependencies import get_workspaces, limiter
from src.application.workspace import WorkspaceRegistry
from src.application.workspace.dto import (
    FollowUpRequest,
    LoadRequest,
    SaveRequest,
    SaveResponse,
    StartRequest,
    WorkspaceEvent,
    WorkspaceSnapshot,
)
from src.domain.entities.file_tree import FileContent
from src.domain.entities.workspace_events import WorkspaceEventType
from src.domain.errors import WorkspaceError, WorkspaceNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


def _stream_response(events: AsyncIterator[WorkspaceEvent]) -> EventSourceResponse:
    """Return SSE stream of round events."""

    async def event_generator():
        try:
            async for evt in events:
                yield {"event": evt.event_type.value, "data": evt.model_dump_json()}
        except WorkspaceError:
            logger.exception("Workspace stream failed")
            yield {"event": "error", "data": "Stream failed"}
        yield {"event": "close", "data": ""}

    return EventSourceResponse(event_generator())


async def _discard_on_error(
    events: AsyncIterator[WorkspaceEvent], workspaces: WorkspaceRegistry, workspace_id: str
) -> AsyncIterator[WorkspaceEvent]:
    """Pass events through; a failed first round drops its workspace."""
    async for evt in events:
        if evt.event_type == WorkspaceEventType.ERROR:
            await workspaces.discard(workspace_id)
        yield evt


@router.post("", response_model=None)
@limiter.limit("10/minute")
async def create_workspace(
    request: Request,
    body: StartRequest,
    stream: bool = False,
    workspaces: WorkspaceRegistry = Depends(get_workspaces),
) -> WorkspaceSnapshot | EventSourceResponse:
    """Generate a project from a prompt. Use stream=true for SSE stage events."""
    orchestrator = workspaces.create()
    if stream:
        events = orchestrator.start_stream(body.prompt)
        return _stream_response(_discard_on_error(events, workspaces, orchestrator.workspace_id))
    try:
        return await orchestrator.start(body.prompt)
    except WorkspaceError:
        # Nothing was committed; the client starts again with a new request.
        await workspaces.discard(orchestrator.workspace_id)
        raise


@router.post("/load", response_model=WorkspaceSnapshot)
@limiter.limit("30/minute")
async def load_workspace(
    request: Request,
    body: LoadRequest,
    workspaces: WorkspaceRegistry = Depends(get_workspaces),
) -> WorkspaceSnapshot:
    """Reopen a stored session in a new workspace."""
    orchestrator = workspaces.create()
    try:
        return await orchestrator.load(body.session_id)
    except WorkspaceError:
        await workspaces.discard(orchestrator.workspace_id)
        raise


@router.get("/{workspace_id}", response_model=WorkspaceSnapshot)
@limiter.limit("120/minute")
async def get_workspace(
    workspace_id: str,
    request: Request,
    workspaces: WorkspaceRegistry = Depends(get_workspaces),
) -> WorkspaceSnapshot:
    return workspaces.get(workspace_id).snapshot()


@router.post("/{workspace_id}/follow-ups", response_model=None)
@limiter.limit("10/minute")
async def submit_follow_up(
    workspace_id: str,
    request: Request,
    body: FollowUpRequest,
    stream: bool = False,
    workspaces: WorkspaceRegistry = Depends(get_workspaces),
) -> WorkspaceSnapshot | EventSourceResponse:
    """Modify the project. 409 while a round is in flight."""
    orchestrator = workspaces.get(workspace_id)
    if stream:
        return _stream_response(orchestrator.submit_stream(body.prompt))
    return await orchestrator.submit(body.prompt)


@router.delete("/{workspace_id}")
@limiter.limit("30/minute")
async def delete_workspace(
    workspace_id: str,
    request: Request,
    workspaces: WorkspaceRegistry = Depends(get_workspaces),
) -> dict:
    """Close a live workspace and stop its dev server. Saved sessions are kept."""
    if not await workspaces.discard(workspace_id):
        raise WorkspaceNotFoundError(workspace_id)
    return {"ok": True, "workspace_id": workspace_id}


@router.get("/{workspace_id}/files", response_model=FileContent)
@limiter.limit("120/minute")
async def get_file(
    workspace_id: str,
    request: Request,
    path: str = Query(..., min_length=1, max_length=1000),
    workspaces: WorkspaceRegistry = Depends(get_workspaces),
) -> FileContent:
    """File-selection lookup by full path."""
    content = workspaces.get(workspace_id).file_content(path)
    if content is None:
        raise HTTPException(status_code=404, detail=f"File not found: {path}")
    return content


@router.get("/{workspace_id}/mount")
@limiter.limit("60/minute")
async def get_mount(
    workspace_id: str,
    request: Request,
    workspaces: WorkspaceRegistry = Depends(get_workspaces),
) -> dict:
    """Mount descriptor of the committed file tree."""
    return workspaces.get(workspace_id).mount_descriptor()


@router.post("/{workspace_id}/save", response_model=SaveResponse)
@limiter.limit("30/minute")
async def save_workspace(
    workspace_id: str,
    request: Request,
    body: SaveRequest,
    workspaces: WorkspaceRegistry = Depends(get_workspaces),
) -> SaveResponse:
    session_id = await workspaces.get(workspace_id).save(body.owner_id)
    return SaveResponse(session_id=session_id)
