"""Config loader: default.toml, then development.toml, then environment."""

import logging
import os
import tomllib
from pathlib import Path

from src.domain.ports.config import AppConfig, ModelConfig, ProviderModelSet

logger = logging.getLogger(__name__)

# (env var, section, key) for plain string settings.
_ENV_STRINGS = (
    ("LLM_PROVIDER", "llm", "provider"),
    ("OLLAMA_HOST", "ollama", "host"),
    ("OPENAI_BASE_URL", "openai_compatible", "base_url"),
    ("GROQ_API_KEY", "openai_compatible", "api_key"),
    ("OPENAI_API_KEY", "openai_compatible", "api_key"),
    ("LOG_FILE", "logging", "file"),
    ("SESSIONS_DIR", "persistence", "sessions_dir"),
    ("RUNTIME_WORKDIR", "runtime", "workdir"),
)
_ENV_INTS = (
    ("PORT", "server", "port"),
    ("RATE_LIMIT_PER_MINUTE", "security", "rate_limit_requests_per_minute"),
)


def default_config_dir() -> Path:
    """<repo>/config."""
    return Path(__file__).resolve().parents[3] / "config"


def _read_toml(path: Path) -> dict:
    if not path.exists():
        return {}
    with open(path, "rb") as f:
        return tomllib.load(f)


def _overlay(base: dict, top: dict) -> dict:
    """Section-wise merge: keys of a table in top replace the same keys in base."""
    merged = dict(base)
    for section, values in top.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section] = {**merged[section], **values}
        else:
            merged[section] = values
    return merged


def _models_from_toml(raw: dict) -> ModelConfig:
    """[models] holds default ids as strings and [models.<provider>] override tables."""
    overrides = {name: ProviderModelSet(**(table or {})) for name, table in raw.items() if isinstance(table, dict)}
    defaults = {key: value for key, value in raw.items() if isinstance(value, str)}
    return ModelConfig(overrides=overrides, **defaults)


def _apply_env_overrides(config: dict) -> dict:
    """Environment beats files. Later entries of _ENV_STRINGS win for the same key."""
    for var, section, key in _ENV_STRINGS:
        if value := os.getenv(var):
            config.setdefault(section, {})[key] = value.strip()
    for var, section, key in _ENV_INTS:
        if value := os.getenv(var):
            try:
                config.setdefault(section, {})[key] = int(value)
            except ValueError:
                logger.warning("Invalid %s env value: %r, ignoring", var, value)
    if level := os.getenv("LOG_LEVEL"):
        config.setdefault("logging", {})["level"] = level.upper()
    if origins := os.getenv("CORS_ORIGINS"):
        config.setdefault("security", {})["cors_origins"] = [o.strip() for o in origins.split(",")]
    return config


def load_config(config_dir: Path | None = None) -> AppConfig:
    """Build AppConfig from the TOML files in config_dir (default: <repo>/config) plus env."""
    config_dir = config_dir or default_config_dir()
    raw = _overlay(_read_toml(config_dir / "default.toml"), _read_toml(config_dir / "development.toml"))
    raw = _apply_env_overrides(raw)

    log_section = raw.pop("logging", None) or {}
    models = _models_from_toml(raw.pop("models", None) or {})
    return AppConfig.model_validate(
        {
            **{section: values for section, values in raw.items() if isinstance(values, dict)},
            "models": models,
            "log_level": log_section.get("level", "INFO"),
            "log_file": (log_section.get("file") or "").strip(),
            "log_rotation_max_mb": int(log_section.get("log_rotation_max_mb", 5)),
            "log_rotation_backups": int(log_section.get("log_rotation_backups", 3)),
        }
    )
