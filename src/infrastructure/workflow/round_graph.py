"""LangGraph round pipeline - classify → generate → parse → build → mount.

Initial rounds enter at classify; follow-up rounds arrive with their user
turn already appended and enter at generate.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Literal, TypedDict

from langgraph.graph import END, START, StateGraph

from src.domain.entities.conversation import Conversation, TurnRole
from src.domain.entities.file_tree import Forest
from src.domain.entities.steps import Step, next_step_id
from src.domain.entities.workspace_session import SessionStage
from src.domain.errors import MountProjectionError
from src.domain.ports.config import AppConfig
from src.domain.ports.llm import LLMMessage, LLMPort, conversation_to_messages
from src.domain.services.artifact_parser import contains_artifact, parse_artifact
from src.domain.services.mount_projector import MountDescriptor, project_mount
from src.domain.services.project_classifier import ProjectClassifier
from src.domain.services.tree_builder import fold_steps
from src.infrastructure.services.prompt_templates import (
    CLASSIFY_INSTRUCTION,
    SYSTEM_PROMPT,
    base_payload,
    initial_prompt,
)

logger = logging.getLogger(__name__)

StageCallback = Callable[[SessionStage], Awaitable[None]]
StepsCallback = Callable[[list[Step]], Awaitable[None]]


class RoundState(TypedDict, total=False):
    """State flowing through one round."""

    mode: Literal["initial", "follow_up"]
    prompt: str
    project_type: str
    conversation: Conversation
    forest: Forest
    steps: list[Step]
    response: str
    new_steps: list[Step]
    changed_paths: list[str]
    mount: MountDescriptor


def _entry(state: RoundState) -> Literal["classify", "generate"]:
    return "classify" if state.get("mode", "initial") == "initial" else "generate"


def build_round_graph(
    llm: LLMPort,
    config: AppConfig,
    on_stage: StageCallback | None = None,
    on_steps: StepsCallback | None = None,
) -> StateGraph:
    """Build the round graph with injected backend and callbacks."""
    classifier = ProjectClassifier(default=config.generation.default_project_type)
    models = config.resolved_models

    async def _stage(stage: SessionStage) -> None:
        if on_stage is not None:
            await on_stage(stage)

    async def classify_node(state: RoundState) -> RoundState:
        await _stage(SessionStage.AWAITING_CLASSIFICATION)
        prompt = state["prompt"]
        resp = await llm.generate(
            [LLMMessage(role="system", content=CLASSIFY_INSTRUCTION), LLMMessage(role="user", content=prompt)],
            model=models.classify,
            temperature=config.generation.classify_temperature,
        )
        project_type = classifier.classify(resp.content).project_type
        logger.info("Selected project type: %s", project_type)
        conversation = state.get("conversation") or Conversation()
        conversation = conversation.append(TurnRole.USER, *base_payload(project_type), initial_prompt(prompt))
        return {"project_type": project_type, "conversation": conversation}

    async def generate_node(state: RoundState) -> RoundState:
        if state.get("mode", "initial") == "initial":
            await _stage(SessionStage.AWAITING_GENERATION)
        conversation = state["conversation"]
        resp = await llm.generate(
            conversation_to_messages(conversation, SYSTEM_PROMPT),
            model=models.generate,
            temperature=config.generation.generate_temperature,
        )
        logger.info("Content generated - %d chars", len(resp.content))
        if not contains_artifact(resp.content):
            logger.warning("Response may not contain proper artifact structure")
        return {
            "response": resp.content,
            "conversation": conversation.append(TurnRole.ASSISTANT, resp.content),
        }

    async def parse_node(state: RoundState) -> RoundState:
        await _stage(SessionStage.PARSING)
        new_steps = parse_artifact(state["response"], start_id=next_step_id(state.get("steps", [])))
        if not new_steps:
            logger.info("Response contained no build steps")
        if on_steps is not None:
            await on_steps(new_steps)
        return {"new_steps": new_steps}

    async def build_node(state: RoundState) -> RoundState:
        await _stage(SessionStage.BUILDING)
        result = fold_steps(state["forest"], state["new_steps"])
        return {
            "forest": result.forest,
            "steps": [*state.get("steps", []), *result.steps],
            "changed_paths": result.changed_paths,
        }

    async def mount_node(state: RoundState) -> RoundState:
        await _stage(SessionStage.MOUNTING)
        try:
            descriptor = project_mount(state["forest"])
        except MountProjectionError:
            logger.exception("Mount projection failed")
            raise
        return {"mount": descriptor}

    builder = StateGraph(RoundState)
    builder.add_node("classify", classify_node)
    builder.add_node("generate", generate_node)
    builder.add_node("parse", parse_node)
    builder.add_node("build", build_node)
    builder.add_node("mount", mount_node)

    builder.add_conditional_edges(
        START,
        _entry,
        path_map={"classify": "classify", "generate": "generate"},
    )
    builder.add_edge("classify", "generate")
    builder.add_edge("generate", "parse")
    builder.add_edge("parse", "build")
    builder.add_edge("build", "mount")
    builder.add_edge("mount", END)

    return builder


def compile_round_graph(builder: StateGraph):
    """Compile without a checkpointer; the orchestrator commits results itself."""
    return builder.compile()
