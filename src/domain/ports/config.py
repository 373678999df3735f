"""Application configuration models (TOML sections)."""

from pydantic import BaseModel, ConfigDict


class ProviderModelSet(BaseModel):
    """Model IDs per call shape for a specific provider. All optional, merged with defaults."""

    classify: str | None = None
    generate: str | None = None


class ModelConfig(BaseModel):
    """Model per call shape. Provider-agnostic defaults + per-provider overrides."""

    classify: str = "openai/gpt-oss-120b"
    generate: str = "openai/gpt-oss-120b"
    # Per-provider overrides. Keys: provider name (openai_compatible, ollama).
    overrides: dict[str, ProviderModelSet] = {}

    model_config = ConfigDict(extra="ignore")

    def get_models_for_provider(self, provider: str) -> "ResolvedModelSet":
        """Resolve model IDs for provider. Uses overrides when present, else defaults."""
        if provider not in self.overrides:
            return ResolvedModelSet(classify=self.classify, generate=self.generate)
        o = self.overrides[provider]
        return ResolvedModelSet(
            classify=o.classify if o.classify is not None else self.classify,
            generate=o.generate if o.generate is not None else self.generate,
        )


class ResolvedModelSet:
    """Resolved model IDs for a provider. Immutable."""

    __slots__ = ("classify", "generate")

    def __init__(self, classify: str, generate: str) -> None:
        self.classify = classify
        self.generate = generate


class LLMConfig(BaseModel):
    """Completion backend provider selection."""

    provider: str = "openai_compatible"  # "openai_compatible" | "ollama"


class OllamaConfig(BaseModel):
    """Ollama connection configuration."""

    host: str = "http://localhost:11434"
    timeout: int = 300
    num_ctx: int | None = None  # Context window. None = model default.
    num_predict: int | None = None  # Max tokens to generate. None = model default.


class OpenAICompatibleConfig(BaseModel):
    """Groq, LM Studio, vLLM - OpenAI-compatible chat completions API."""

    base_url: str = "https://api.groq.com/openai/v1"
    api_key: str = ""
    timeout: int = 300
    max_tokens: int | None = None
    # Attempts for requests that fail before reaching the server (connect errors only).
    connect_retries: int = 3


class GenerationConfig(BaseModel):
    """Sampling and classification defaults."""

    classify_temperature: float = 1.0
    generate_temperature: float = 0.5
    default_project_type: str = "react"  # used when classification is ambiguous


class SecurityConfig(BaseModel):
    """Security settings."""

    rate_limit_requests_per_minute: int = 100
    cors_origins: list[str] = ["http://localhost:5173"]


class PersistenceConfig(BaseModel):
    """Session store settings."""

    sessions_dir: str = "output/sessions"


class RuntimeConfig(BaseModel):
    """Local preview runtime. Disabled = code editing only, no preview."""

    enabled: bool = False
    workdir: str = "output/runtime"
    install_command: str = "npm install"
    start_command: str = "npm run dev"
    ready_timeout: float = 120.0


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Full application configuration."""

    server: ServerConfig = ServerConfig()
    llm: LLMConfig = LLMConfig()
    ollama: OllamaConfig = OllamaConfig()
    openai_compatible: OpenAICompatibleConfig = OpenAICompatibleConfig()
    models: ModelConfig = ModelConfig()
    generation: GenerationConfig = GenerationConfig()
    security: SecurityConfig = SecurityConfig()
    persistence: PersistenceConfig = PersistenceConfig()
    runtime: RuntimeConfig = RuntimeConfig()
    log_level: str = "INFO"
    # Log file: path relative to cwd or absolute. Empty = only stdout. Rotation when file exceeds max_mb.
    log_file: str = ""
    log_rotation_max_mb: int = 5
    log_rotation_backups: int = 3

    @property
    def resolved_models(self) -> ResolvedModelSet:
        return self.models.get_models_for_provider(self.llm.provider)

