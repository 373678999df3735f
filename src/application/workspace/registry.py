"""Live workspaces, keyed by id. In-memory; lost on restart (save to keep)."""

import uuid
from collections.abc import Callable

from src.application.workspace.use_case import WorkspaceOrchestrator
from src.domain.errors import WorkspaceNotFoundError

OrchestratorFactory = Callable[[str], WorkspaceOrchestrator]


class WorkspaceRegistry:
    def __init__(self, factory: OrchestratorFactory) -> None:
        self._factory = factory
        self._workspaces: dict[str, WorkspaceOrchestrator] = {}

    def create(self) -> WorkspaceOrchestrator:
        workspace_id = uuid.uuid4().hex
        orchestrator = self._factory(workspace_id)
        self._workspaces[workspace_id] = orchestrator
        return orchestrator

    def get(self, workspace_id: str) -> WorkspaceOrchestrator:
        try:
            return self._workspaces[workspace_id]
        except KeyError:
            raise WorkspaceNotFoundError(workspace_id) from None

    async def discard(self, workspace_id: str) -> bool:
        """Forget a workspace and stop its runtime. False if it was not live."""
        orchestrator = self._workspaces.pop(workspace_id, None)
        if orchestrator is None:
            return False
        await orchestrator.close()
        return True

    async def close_all(self) -> None:
        for workspace_id in list(self._workspaces):
            await self.discard(workspace_id)

    def __len__(self) -> int:
        return len(self._workspaces)
