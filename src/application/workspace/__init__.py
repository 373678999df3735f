"""Workspace application layer."""

from src.application.workspace.registry import WorkspaceRegistry
from src.application.workspace.use_case import WorkspaceOrchestrator

__all__ = ["WorkspaceOrchestrator", "WorkspaceRegistry"]
