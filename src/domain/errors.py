"""Domain errors - raised by the workspace pipeline and its adapters."""


class WorkspaceError(Exception):
    """Base class for workspace pipeline errors."""


class CompletionBackendError(WorkspaceError):
    """Completion backend failed (transport, timeout, non-success, empty output)."""


class PersistenceError(WorkspaceError):
    """Session store could not read or write a session."""


class SessionNotFoundError(PersistenceError):
    """No stored session with the requested id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class RuntimeUnavailableError(WorkspaceError):
    """Execution runtime failed to boot, mount, install or start."""


class RoundInProgressError(WorkspaceError):
    """A generation round is already in flight for this session."""


class InvalidSessionStateError(WorkspaceError):
    """Operation is not allowed in the current session stage."""


class MountProjectionError(WorkspaceError):
    """Forest could not be projected. Indicates a broken tree invariant upstream."""


class WorkspaceNotFoundError(WorkspaceError):
    """No live workspace with the requested id."""

    def __init__(self, workspace_id: str) -> None:
        super().__init__(f"Workspace not found: {workspace_id}")
        self.workspace_id = workspace_id
