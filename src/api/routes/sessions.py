"""Sessions API - stored sessions per owner, plus zip download."""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel, Field

from src.api.dependencies import get_session_store, limiter
from src.domain.entities.workspace_session import SessionSummary, WorkspaceSession
from src.domain.ports.session_store import SessionStorePort
from src.infrastructure.services.archive_service import archive_filename, build_archive

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


class CreateSessionRequest(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=200)
    session: WorkspaceSession


class CreateSessionResponse(BaseModel):
    id: str


@router.get("", response_model=list[SessionSummary])
@limiter.limit("60/minute")
async def list_sessions(
    request: Request,
    owner_id: str = Query(..., min_length=1, max_length=200),
    store: SessionStorePort = Depends(get_session_store),
) -> list[SessionSummary]:
    """Owner's sessions, newest first."""
    return await asyncio.to_thread(store.list_by_owner, owner_id)


@router.get("/{session_id}", response_model=WorkspaceSession)
@limiter.limit("60/minute")
async def get_session(
    session_id: str,
    request: Request,
    store: SessionStorePort = Depends(get_session_store),
) -> WorkspaceSession:
    return await asyncio.to_thread(store.get, session_id)


@router.post("", response_model=CreateSessionResponse, status_code=201)
@limiter.limit("30/minute")
async def create_session(
    request: Request,
    body: CreateSessionRequest,
    store: SessionStorePort = Depends(get_session_store),
) -> CreateSessionResponse:
    session_id = await asyncio.to_thread(store.create, body.session, body.owner_id)
    return CreateSessionResponse(id=session_id)


@router.put("/{session_id}")
@limiter.limit("30/minute")
async def update_session(
    session_id: str,
    request: Request,
    session: WorkspaceSession,
    store: SessionStorePort = Depends(get_session_store),
) -> dict:
    await asyncio.to_thread(store.update, session_id, session)
    return {"ok": True}


@router.delete("/{session_id}")
@limiter.limit("30/minute")
async def delete_session(
    session_id: str,
    request: Request,
    store: SessionStorePort = Depends(get_session_store),
) -> dict:
    deleted = await asyncio.to_thread(store.delete, session_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"ok": True}


@router.get("/{session_id}/download")
@limiter.limit("30/minute")
async def download_session(
    session_id: str,
    request: Request,
    store: SessionStorePort = Depends(get_session_store),
) -> Response:
    """Zip of every file in the session's tree."""
    session = await asyncio.to_thread(store.get, session_id)
    data = build_archive(session.as_forest())
    logger.info("Exported session %s (%d bytes)", session_id, len(data))
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{archive_filename(session.title)}"'},
    )
