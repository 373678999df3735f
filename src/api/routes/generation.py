"""Generation API - classification (/template) and raw generation (/chat)."""

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from src.api.dependencies import get_classifier, get_config, get_llm, limiter
from src.domain.entities.conversation import Conversation
from src.domain.ports.config import AppConfig
from src.domain.ports.llm import LLMMessage, LLMPort, conversation_to_messages
from src.domain.services.project_classifier import ProjectClassifier
from src.infrastructure.services.prompt_templates import (
    CLASSIFY_INSTRUCTION,
    SYSTEM_PROMPT,
    base_payload,
    template_for,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generation"])


class TemplateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=50_000)


class TemplateResponse(BaseModel):
    project_type: str
    prompt: list[str]  # base payload parts for the first user turn
    ui_prompt: str  # starter artifact for the project type


class ChatRequest(BaseModel):
    conversation: Conversation


class ChatResponse(BaseModel):
    response: str


@router.post("/template", response_model=TemplateResponse)
@limiter.limit("30/minute")
async def template(
    request: Request,
    body: TemplateRequest,
    llm: LLMPort = Depends(get_llm),
    classifier: ProjectClassifier = Depends(get_classifier),
    config: AppConfig = Depends(get_config),
) -> TemplateResponse:
    """Classify the prompt and return the base payload for its project type."""
    resp = await llm.generate(
        [LLMMessage(role="system", content=CLASSIFY_INSTRUCTION), LLMMessage(role="user", content=body.prompt)],
        model=config.resolved_models.classify,
        temperature=config.generation.classify_temperature,
    )
    project_type = classifier.classify(resp.content).project_type
    return TemplateResponse(
        project_type=project_type,
        prompt=base_payload(project_type),
        ui_prompt=template_for(project_type),
    )


@router.post("/chat", response_model=ChatResponse)
@limiter.limit("30/minute")
async def chat(
    request: Request,
    body: ChatRequest,
    llm: LLMPort = Depends(get_llm),
    config: AppConfig = Depends(get_config),
) -> ChatResponse:
    """Run one generation call over a caller-held conversation."""
    resp = await llm.generate(
        conversation_to_messages(body.conversation, SYSTEM_PROMPT),
        model=config.resolved_models.generate,
        temperature=config.generation.generate_temperature,
    )
    return ChatResponse(response=resp.content)
