"""Config API - read and update settings (the "enter your API key" dialog)."""

import tomllib
from pathlib import Path

import tomli_w
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from src.api.container import get_container, reset_container
from src.api.dependencies import get_config, limiter
from src.domain.ports.config import AppConfig
from src.infrastructure.config import default_config_dir
from src.shared.logging import setup_logging

router = APIRouter(prefix="/config", tags=["config"])

# Sections that may be written to development.toml.
_EDITABLE = ("llm", "models", "ollama", "openai_compatible", "generation", "runtime", "logging")


class ConfigPatch(BaseModel):
    """Partial config update. All fields optional."""

    llm: dict | None = None
    models: dict | None = None
    ollama: dict | None = None
    openai_compatible: dict | None = None
    generation: dict | None = None
    runtime: dict | None = None
    logging: dict | None = None


def _development_path() -> Path:
    return default_config_dir() / "development.toml"


def _mask_key(value: str | None) -> str:
    if not value or not value.strip():
        return ""
    s = value.strip()
    return f"***{s[-4:]}" if len(s) >= 8 else "***"


def _deep_merge(base: dict, patch: dict) -> dict:
    result = dict(base)
    for k, v in patch.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


@router.get("")
@limiter.limit("60/minute")
async def get_config_route(request: Request, config: AppConfig = Depends(get_config)) -> dict:
    """Editable config subset for the settings UI. Secrets are masked."""
    models = config.models
    openai_compatible = config.openai_compatible.model_dump()
    openai_compatible["api_key"] = _mask_key(config.openai_compatible.api_key)
    return {
        "llm": {"provider": config.llm.provider},
        "models": {
            "defaults": {"classify": models.classify, "generate": models.generate},
            "overrides": {k: v.model_dump(exclude_none=True) for k, v in models.overrides.items()},
            "resolved": {"classify": config.resolved_models.classify, "generate": config.resolved_models.generate},
        },
        "ollama": config.ollama.model_dump(exclude_none=True),
        "openai_compatible": openai_compatible,
        "generation": config.generation.model_dump(),
        "runtime": config.runtime.model_dump(),
        "logging": {
            "level": config.log_level,
            "file": config.log_file or "",
            "log_rotation_max_mb": config.log_rotation_max_mb,
            "log_rotation_backups": config.log_rotation_backups,
        },
    }


def _to_toml_structure(updates: dict) -> dict:
    """Settings UI format → TOML sections. None values are dropped."""
    result: dict = {}
    for section in _EDITABLE:
        if section not in updates or section == "models":
            continue
        values = {k: v for k, v in updates[section].items() if v is not None}
        if values:
            result[section] = values
    if "models" in updates:
        m = updates["models"]
        models_section: dict = dict(m.get("defaults") or {})
        for provider, override in (m.get("overrides") or {}).items():
            if override:
                models_section[provider] = override
        if models_section:
            result["models"] = models_section
    return result


@router.patch("")
@limiter.limit("10/minute")
async def patch_config_route(request: Request, updates: ConfigPatch) -> dict:
    """Merge into development.toml. Applies immediately; live workspaces are dropped."""
    updates_dict = updates.model_dump(exclude_none=True)
    toml_updates = _to_toml_structure(updates_dict)
    if not toml_updates:
        return {"ok": True, "message": "No changes."}

    path = _development_path()
    existing: dict = {}
    if path.exists():
        with open(path, "rb") as f:
            existing = tomllib.load(f)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump(_deep_merge(existing, toml_updates), f)

    await get_container().shutdown()
    reset_container()

    if "logging" in updates_dict:
        c = get_container().config
        setup_logging(
            level=c.log_level,
            file_path=c.log_file or "",
            rotation_max_mb=c.log_rotation_max_mb,
            rotation_backups=c.log_rotation_backups,
        )

    return {"ok": True, "message": "Config saved."}
