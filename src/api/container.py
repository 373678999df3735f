"""Dependency Injection Container - centralized service management."""

from functools import cached_property
from pathlib import Path

from src.application.workspace import WorkspaceOrchestrator, WorkspaceRegistry
from src.domain.ports.config import AppConfig
from src.domain.ports.llm import LLMPort
from src.domain.ports.runtime import RuntimePort
from src.domain.ports.session_store import SessionStorePort
from src.domain.services.project_classifier import ProjectClassifier
from src.infrastructure.config import load_config


class Container:
    """Dependency Injection Container with lazy initialization.

    All dependencies are created on first access and cached. Tests pass a
    config, or assign fakes to the cached attributes before first use:

        container = Container(config=AppConfig())
        container.llm = FakeLLM()
    """

    def __init__(self, config: AppConfig | None = None):
        self._config_override = config

    @cached_property
    def config(self) -> AppConfig:
        """Application configuration."""
        if self._config_override:
            return self._config_override
        return load_config()

    @cached_property
    def llm(self) -> LLMPort:
        """Completion backend adapter based on config provider."""
        if self.config.llm.provider == "ollama":
            from src.infrastructure.llm.ollama import OllamaAdapter

            return OllamaAdapter(self.config.ollama)

        from src.infrastructure.llm.openai_compatible import OpenAICompatibleAdapter

        return OpenAICompatibleAdapter(self.config.openai_compatible)

    @cached_property
    def classifier(self) -> ProjectClassifier:
        return ProjectClassifier(default=self.config.generation.default_project_type)

    @cached_property
    def session_store(self) -> SessionStorePort:
        """File-backed session store."""
        from src.infrastructure.persistence.session_store import FileSessionStore

        return FileSessionStore(self.config.persistence.sessions_dir)

    def runtime_for(self, workspace_id: str) -> RuntimePort | None:
        """New local runtime in its own working directory, or None when previews are disabled."""
        if not self.config.runtime.enabled:
            return None
        from src.infrastructure.runtime.local_process import LocalProcessRuntime

        return LocalProcessRuntime(Path(self.config.runtime.workdir) / workspace_id)

    def _new_orchestrator(self, workspace_id: str) -> WorkspaceOrchestrator:
        return WorkspaceOrchestrator(
            workspace_id,
            llm=self.llm,
            config=self.config,
            store=self.session_store,
            runtime=self.runtime_for(workspace_id),
        )

    @cached_property
    def workspaces(self) -> WorkspaceRegistry:
        """Live workspaces (in memory)."""
        return WorkspaceRegistry(self._new_orchestrator)

    async def shutdown(self) -> None:
        """Stop live workspaces and close the backend client. Only touches what was created."""
        if "workspaces" in self.__dict__:
            await self.workspaces.close_all()
        if "llm" in self.__dict__ and hasattr(self.llm, "close"):
            await self.llm.close()

    def reset(self) -> None:
        """Reset all cached instances (useful for testing)."""
        for attr in list(self.__dict__.keys()):
            if not attr.startswith("_"):
                delattr(self, attr)


# Global container instance
_container: Container | None = None


def get_container() -> Container:
    """Get or create global container instance."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def set_container(container: Container) -> None:
    """Install a prepared container (tests)."""
    global _container
    _container = container


def reset_container() -> None:
    """Reset global container (for testing and after config changes)."""
    global _container
    if _container:
        _container.reset()
    _container = None
