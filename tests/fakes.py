"""In-memory fakes for the completion backend, session store and runtime."""

import asyncio
import uuid
from datetime import datetime, timezone

from src.domain.entities.workspace_session import SessionSummary, WorkspaceSession
from src.domain.errors import CompletionBackendError, RuntimeUnavailableError, SessionNotFoundError
from src.domain.ports.llm import LLMMessage, LLMResponse
from src.infrastructure.services.prompt_templates import CLASSIFY_INSTRUCTION

ARTIFACT = (
    '<boltArtifact id="demo" title="Demo">'
    '<boltAction type="file" filePath="src/a.txt">X</boltAction>'
    '<boltAction type="shell">npm install</boltAction>'
    "</boltArtifact>"
)


def artifact(title: str, files: dict[str, str]) -> str:
    actions = "".join(f'<boltAction type="file" filePath="{p}">{c}</boltAction>' for p, c in files.items())
    return f'<boltArtifact id="x" title="{title}">{actions}</boltArtifact>'


class FakeLLM:
    """Answers classification with `label` and generation from a scripted queue.

    A queued Exception is raised instead of answered. When `gate` is set, each
    generation call waits for it first.
    """

    def __init__(self, responses: list[str | Exception] | None = None, label: str = "react") -> None:
        self.label = label
        self.responses: list[str | Exception] = list(responses or [ARTIFACT])
        self.calls: list[list[LLMMessage]] = []
        self.gate: asyncio.Event | None = None
        self.entered = asyncio.Event()
        self.closed = False

    async def generate(self, messages, model=None, temperature=0.7) -> LLMResponse:
        self.calls.append(list(messages))
        if messages and messages[0].content == CLASSIFY_INSTRUCTION:
            return LLMResponse(content=self.label, model=model or "fake")
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        item = self.responses.pop(0) if self.responses else ARTIFACT
        if isinstance(item, Exception):
            raise item
        return LLMResponse(content=item, model=model or "fake")

    async def is_available(self) -> bool:
        return True

    async def list_models(self) -> list[str]:
        return ["fake"]

    async def close(self) -> None:
        self.closed = True


def backend_down() -> CompletionBackendError:
    return CompletionBackendError("Completion backend unreachable: connection refused")


class MemorySessionStore:
    def __init__(self) -> None:
        self.records: dict[str, dict] = {}

    def create(self, session: WorkspaceSession, owner_id: str) -> str:
        session_id = uuid.uuid4().hex
        self.records[session_id] = {
            "owner_id": owner_id,
            "created_at": datetime.now(timezone.utc),
            "session": session.model_copy(update={"id": session_id}, deep=True),
        }
        return session_id

    def update(self, session_id: str, session: WorkspaceSession) -> None:
        if session_id not in self.records:
            raise SessionNotFoundError(session_id)
        self.records[session_id]["session"] = session.model_copy(update={"id": session_id}, deep=True)

    def get(self, session_id: str) -> WorkspaceSession:
        if session_id not in self.records:
            raise SessionNotFoundError(session_id)
        return self.records[session_id]["session"].model_copy(deep=True)

    def list_by_owner(self, owner_id: str) -> list[SessionSummary]:
        items = [
            SessionSummary(id=sid, title=r["session"].title, prompt=r["session"].prompt, created_at=r["created_at"])
            for sid, r in self.records.items()
            if r["owner_id"] == owner_id
        ]
        return sorted(items, key=lambda s: s.created_at, reverse=True)

    def delete(self, session_id: str) -> bool:
        return self.records.pop(session_id, None) is not None


class FakeRuntime:
    def __init__(
        self,
        url: str = "http://localhost:5173",
        fail_mount: bool = False,
        install_code: int = 0,
        mount_error: Exception | None = None,
    ) -> None:
        self.url = url
        self.fail_mount = fail_mount
        self.install_code = install_code
        self.mount_error = mount_error
        self.mounts: list[dict] = []
        self.commands: list[str] = []
        self.started: list[str] = []
        self.closed = False

    async def mount(self, descriptor) -> None:
        if self.fail_mount:
            raise RuntimeUnavailableError("boot failed")
        if self.mount_error is not None:
            raise self.mount_error
        self.mounts.append(descriptor)

    async def run(self, command: str) -> int:
        self.commands.append(command)
        return self.install_code

    async def start(self, command: str) -> None:
        self.started.append(command)

    async def wait_ready(self, timeout=None) -> str:
        return self.url

    async def close(self) -> None:
        self.closed = True


async def read_events(resp) -> list[tuple[str, str]]:
    """(event, data) pairs from an SSE response."""
    events = []
    current = None
    async for line in resp.aiter_lines():
        if line.startswith("event:"):
            current = line[6:].strip()
        elif line.startswith("data:") and current is not None:
            events.append((current, line[5:].strip()))
            current = None
    return events
