"""FastAPI dependencies - thin accessors over the DI container."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from src.api.container import get_container
from src.application.workspace import WorkspaceRegistry
from src.domain.ports.config import AppConfig
from src.domain.ports.llm import LLMPort
from src.domain.ports.session_store import SessionStorePort
from src.domain.services.project_classifier import ProjectClassifier

limiter = Limiter(key_func=get_remote_address)


def get_config() -> AppConfig:
    """Current config (reloaded after PATCH /config resets the container)."""
    return get_container().config


def get_llm() -> LLMPort:
    return get_container().llm


def get_classifier() -> ProjectClassifier:
    return get_container().classifier


def get_session_store() -> SessionStorePort:
    return get_container().session_store


def get_workspaces() -> WorkspaceRegistry:
    return get_container().workspaces
