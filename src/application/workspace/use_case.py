"""Workspace use case - session state machine over the round graph."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Coroutine
from typing import Any

from src.application.workspace.dto import WorkspaceEvent, WorkspaceSnapshot
from src.domain.entities.conversation import Conversation, TurnRole
from src.domain.entities.file_tree import FileContent, Forest
from src.domain.entities.steps import Step
from src.domain.entities.workspace_events import WorkspaceEventType
from src.domain.entities.workspace_session import SessionStage, WorkspaceSession
from src.domain.errors import (
    CompletionBackendError,
    InvalidSessionStateError,
    PersistenceError,
    RoundInProgressError,
    RuntimeUnavailableError,
)
from src.domain.ports.config import AppConfig
from src.domain.ports.llm import LLMPort
from src.domain.ports.runtime import RuntimePort
from src.domain.ports.session_store import SessionStorePort
from src.domain.services.mount_projector import MountDescriptor, project_mount
from src.infrastructure.services.prompt_templates import follow_up_prompt
from src.infrastructure.workflow import RoundState, build_round_graph, compile_round_graph

logger = logging.getLogger(__name__)

Listener = Callable[[WorkspaceEvent], Awaitable[None]]

# Stages during which a round owns the session.
_IN_FLIGHT = frozenset(
    {
        SessionStage.INITIALIZING,
        SessionStage.AWAITING_CLASSIFICATION,
        SessionStage.AWAITING_GENERATION,
        SessionStage.PARSING,
        SessionStage.BUILDING,
        SessionStage.MOUNTING,
        SessionStage.SUBMITTING,
    }
)
_TERMINAL_EVENTS = (WorkspaceEventType.DONE, WorkspaceEventType.ERROR)


def _consume_result(task: asyncio.Task) -> None:
    # Failures are already recorded and logged by the orchestrator.
    if not task.cancelled():
        task.exception()


class WorkspaceOrchestrator:
    """Sequences classification, generation, parse, build and mount for one workspace.

    The committed session only changes when a round completes. While a round
    is in flight its conversation (with the new user turn) is held separately,
    so a failed round leaves the last good session untouched.

    Stage checks and transitions that guard a round happen before its first
    await, which is what makes them atomic under asyncio.
    """

    def __init__(
        self,
        workspace_id: str,
        llm: LLMPort,
        config: AppConfig,
        store: SessionStorePort,
        runtime: RuntimePort | None = None,
    ) -> None:
        self._id = workspace_id
        self._config = config
        self._store = store
        self._runtime = runtime
        self._graph = compile_round_graph(
            build_round_graph(llm, config, on_stage=self._enter_stage, on_steps=self._announce_steps)
        )
        self._stage = SessionStage.IDLE
        self._session: WorkspaceSession | None = None
        self._pending: Conversation | None = None
        self._mount: MountDescriptor | None = None
        self._preview_task: asyncio.Task | None = None
        self._preview_url: str | None = None
        self._runtime_error: str | None = None
        self._error: str | None = None
        self._listeners: list[Listener] = []
        self._save_lock = asyncio.Lock()

    @property
    def workspace_id(self) -> str:
        return self._id

    @property
    def stage(self) -> SessionStage:
        return self._stage

    @property
    def session(self) -> WorkspaceSession | None:
        """Last committed session."""
        return self._session

    @property
    def conversation(self) -> Conversation:
        """In-flight conversation during a follow-up, else the committed one."""
        if self._pending is not None:
            return self._pending
        return self._session.conversation if self._session is not None else Conversation()

    @property
    def preview_url(self) -> str | None:
        return self._preview_url

    @property
    def preview_task(self) -> asyncio.Task | None:
        return self._preview_task

    def snapshot(self) -> WorkspaceSnapshot:
        return WorkspaceSnapshot(
            workspace_id=self._id,
            stage=self._stage,
            session=self._session,
            pending_user_turns=self.conversation.pending_user_turns() if self._pending is not None else 0,
            preview_url=self._preview_url,
            runtime_error=self._runtime_error,
            error=self._error,
        )

    # --- listeners ---

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _emit(self, event: WorkspaceEvent) -> None:
        event.workspace_id = self._id
        for listener in list(self._listeners):
            await listener(event)

    async def _enter_stage(self, stage: SessionStage) -> None:
        self._stage = stage
        await self._emit(WorkspaceEvent(event_type=WorkspaceEventType.STAGE, stage=stage))

    async def _announce_steps(self, steps: list[Step]) -> None:
        await self._emit(
            WorkspaceEvent(
                event_type=WorkspaceEventType.STEPS,
                stage=self._stage,
                payload={"steps": [s.model_dump(mode="json") for s in steps]},
            )
        )

    # --- guards (synchronous) ---

    def _check_idle(self) -> None:
        if self._stage in _IN_FLIGHT:
            raise RoundInProgressError(f"Workspace {self._id} is busy ({self._stage.value})")

    def _claim_fresh(self) -> None:
        self._check_idle()
        if self._session is not None:
            raise InvalidSessionStateError("Workspace already holds a session; submit a follow-up instead")
        self._stage = SessionStage.INITIALIZING
        self._error = None

    def _claim_follow_up(self, text: str) -> None:
        self._check_idle()
        if self._session is None:
            raise InvalidSessionStateError("No session yet; start or load one first")
        self._stage = SessionStage.SUBMITTING
        self._error = None
        self._pending = self._session.conversation.append(TurnRole.USER, follow_up_prompt(text))

    # --- public operations ---

    async def start(self, prompt: str) -> WorkspaceSnapshot:
        """Generate a new project from prompt.

        Raises:
            RoundInProgressError: A round is already running.
            InvalidSessionStateError: The workspace already holds a session.
            CompletionBackendError: Classification or generation failed (stage becomes error).

        """
        self._claim_fresh()
        await self._initial_round(prompt)
        return self.snapshot()

    def start_stream(self, prompt: str) -> AsyncIterator[WorkspaceEvent]:
        """Like start(), but returns round events as they happen."""
        self._claim_fresh()
        return self._stream(self._initial_round(prompt))

    async def submit(self, text: str) -> WorkspaceSnapshot:
        """Run a follow-up round. Only allowed when ready (or after a failed round)."""
        self._claim_follow_up(text)
        await self._follow_up_round()
        return self.snapshot()

    def submit_stream(self, text: str) -> AsyncIterator[WorkspaceEvent]:
        self._claim_follow_up(text)
        return self._stream(self._follow_up_round())

    async def load(self, session_id: str) -> WorkspaceSnapshot:
        """Restore a stored session verbatim. No parse, build or runtime launch."""
        self._claim_fresh()
        await self._emit(WorkspaceEvent(event_type=WorkspaceEventType.STAGE, stage=self._stage))
        try:
            session = await asyncio.to_thread(self._store.get, session_id)
        except PersistenceError as e:
            await self._fail(e)
            raise
        self._session = session
        self._mount = None
        await self._enter_stage(SessionStage.READY)
        await self._emit_done()
        return self.snapshot()

    async def save(self, owner_id: str) -> str:
        """Persist the committed session; create on first save, update afterwards.

        Saves are serialized, so overlapping first saves create one record.
        """
        async with self._save_lock:
            session = self._session
            if session is None:
                raise InvalidSessionStateError("Nothing to save yet")
            if session.id is None:
                session_id = await asyncio.to_thread(self._store.create, session, owner_id)
                # A round may have committed while the store was writing.
                self._session = self._session.model_copy(update={"id": session_id})
            else:
                session_id = session.id
                await asyncio.to_thread(self._store.update, session_id, session)
        logger.info("Saved workspace %s as session %s", self._id, session_id)
        return session_id

    async def close(self) -> None:
        """Stop the preview launch and the runtime's processes."""
        if self._preview_task is not None and not self._preview_task.done():
            self._preview_task.cancel()
        if self._runtime is not None:
            await self._runtime.close()
        logger.debug("Closed workspace %s", self._id)

    def mount_descriptor(self) -> MountDescriptor:
        """Descriptor of the committed forest, projected on demand after a reload."""
        if self._session is None:
            raise InvalidSessionStateError("No session yet")
        if self._mount is None:
            self._mount = project_mount(self._session.as_forest())
        return self._mount

    def file_content(self, path: str) -> FileContent | None:
        if self._session is None:
            raise InvalidSessionStateError("No session yet")
        return self._session.as_forest().find_file(path)

    # --- rounds ---

    async def _initial_round(self, prompt: str) -> None:
        await self._emit(WorkspaceEvent(event_type=WorkspaceEventType.STAGE, stage=self._stage))
        base = WorkspaceSession.new(prompt)
        state: RoundState = {
            "mode": "initial",
            "prompt": prompt,
            "conversation": base.conversation,
            "forest": Forest(),
            "steps": [],
        }
        await self._run_round(base, state)

    async def _follow_up_round(self) -> None:
        await self._emit(WorkspaceEvent(event_type=WorkspaceEventType.STAGE, stage=self._stage))
        base = self._session
        state: RoundState = {
            "mode": "follow_up",
            "conversation": self._pending,
            "forest": base.as_forest(),
            "steps": list(base.steps),
        }
        await self._run_round(base, state)

    async def _run_round(self, base: WorkspaceSession, state: RoundState) -> None:
        try:
            final = await self._graph.ainvoke(state)
        except Exception as e:
            await self._fail(e)
            raise

        current = self._session if self._session is not None else base
        self._session = current.model_copy(
            update={
                "forest": final["forest"].to_nodes(),
                "steps": final["steps"],
                "conversation": final["conversation"],
            }
        )
        self._pending = None
        self._mount = final["mount"]
        await self._hand_to_runtime(self._mount)
        await self._enter_stage(SessionStage.READY)
        await self._emit_done()

    async def _fail(self, error: Exception) -> None:
        self._pending = None
        self._error = str(error) or error.__class__.__name__
        self._stage = SessionStage.ERROR
        if isinstance(error, (CompletionBackendError, PersistenceError)):
            logger.warning("Workspace %s round failed: %s", self._id, error)
        else:
            logger.exception("Workspace %s round failed", self._id)
        await self._emit(
            WorkspaceEvent(event_type=WorkspaceEventType.ERROR, stage=SessionStage.ERROR, message=self._error)
        )

    async def _emit_done(self) -> None:
        await self._emit(
            WorkspaceEvent(
                event_type=WorkspaceEventType.DONE,
                stage=self._stage,
                payload=self.snapshot().model_dump(mode="json"),
            )
        )

    def _stream(self, round_coro: Coroutine[Any, Any, None]) -> AsyncIterator[WorkspaceEvent]:
        """Start the round now and return its events until done or error."""
        queue: asyncio.Queue[WorkspaceEvent] = asyncio.Queue()

        async def listener(event: WorkspaceEvent) -> None:
            queue.put_nowait(event)

        self.add_listener(listener)
        task = asyncio.create_task(round_coro)
        task.add_done_callback(_consume_result)

        async def events() -> AsyncIterator[WorkspaceEvent]:
            try:
                while True:
                    event = await queue.get()
                    yield event
                    if event.event_type in _TERMINAL_EVENTS:
                        return
            finally:
                self.remove_listener(listener)

        return events()

    # --- runtime ---

    async def _hand_to_runtime(self, descriptor: MountDescriptor) -> None:
        await self._emit(
            WorkspaceEvent(
                event_type=WorkspaceEventType.MOUNT,
                stage=self._stage,
                payload={"entries": len(descriptor)},
            )
        )
        if self._runtime is None:
            return
        # The session is already committed; a mount failure must not keep the round open.
        try:
            await self._runtime.mount(descriptor)
        except Exception as e:
            self._degrade(e)
            return
        if self._preview_task is None:
            self._preview_task = asyncio.create_task(self._launch_preview())

    async def _launch_preview(self) -> None:
        cfg = self._config.runtime
        try:
            exit_code = await self._runtime.run(cfg.install_command)
            if exit_code != 0:
                raise RuntimeUnavailableError(f"'{cfg.install_command}' exited with code {exit_code}")
            await self._runtime.start(cfg.start_command)
            url = await self._runtime.wait_ready(cfg.ready_timeout)
        except Exception as e:
            self._degrade(e)
            await self._emit(WorkspaceEvent(event_type=WorkspaceEventType.PREVIEW, message=self._runtime_error))
            return
        self._preview_url = url
        logger.info("Workspace %s preview ready at %s", self._id, url)
        await self._emit(WorkspaceEvent(event_type=WorkspaceEventType.PREVIEW, payload={"url": url}))

    def _degrade(self, error: Exception) -> None:
        """Keep editing without a preview."""
        self._runtime_error = str(error) or error.__class__.__name__
        if isinstance(error, RuntimeUnavailableError):
            logger.warning("Workspace %s runtime unavailable: %s", self._id, error)
        else:
            logger.exception("Workspace %s runtime failed unexpectedly", self._id)
