"""Session Store Port - persistence of workspace sessions."""

from typing import Protocol

from src.domain.entities.workspace_session import SessionSummary, WorkspaceSession


class SessionStorePort(Protocol):
    """CRUD over stored sessions.

    Failed writes raise PersistenceError and leave the stored side unchanged.
    """

    def create(self, session: WorkspaceSession, owner_id: str) -> str:
        """Store a new session, return its id."""
        ...

    def update(self, session_id: str, session: WorkspaceSession) -> None:
        """Replace a stored session's payload."""
        ...

    def get(self, session_id: str) -> WorkspaceSession:
        """Load a session (SessionNotFoundError if absent)."""
        ...

    def list_by_owner(self, owner_id: str) -> list[SessionSummary]:
        """Owner's sessions, newest first."""
        ...

    def delete(self, session_id: str) -> bool:
        """Delete a session. True if it existed."""
        ...
