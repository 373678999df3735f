"""Runtime Port - interface for the sandboxed execution environment."""

from typing import Protocol

from src.domain.services.mount_projector import MountDescriptor


class RuntimePort(Protocol):
    """Execution runtime that previews a mounted project.

    Implementations raise RuntimeUnavailableError when they cannot boot,
    mount or run commands.
    """

    async def mount(self, descriptor: MountDescriptor) -> None:
        """Write the descriptor's files into the runtime's file system."""
        ...

    async def run(self, command: str) -> int:
        """Run a command to completion, return its exit code."""
        ...

    async def start(self, command: str) -> None:
        """Start a long-running command (dev server) without waiting for it."""
        ...

    async def wait_ready(self, timeout: float | None = None) -> str:
        """Wait until a started process listens; return its routable address."""
        ...

    async def close(self) -> None:
        """Stop every process the runtime started."""
        ...
