"""Validate configured backend models against the provider's model list at startup."""

import structlog

from src.domain.ports.config import AppConfig
from src.domain.ports.llm import LLMPort

log = structlog.get_logger()


async def validate_models_config(llm: LLMPort, config: AppConfig) -> list[str]:
    """Check that configured models exist in the provider. Log a warning for missing ones.

    Never fails startup: an unreachable backend or an empty model list only
    skips the check. Returns the missing "role=model" entries.
    """
    provider = config.llm.provider
    models = config.resolved_models

    try:
        available = await llm.list_models()
    except Exception as e:
        log.warning(
            "models_validation_skipped",
            reason="llm_unreachable",
            provider=provider,
            error=str(e),
        )
        return []

    if not available:
        log.warning(
            "models_validation_skipped",
            reason="no_models_returned",
            provider=provider,
        )
        return []

    # Exact names + base names ("qwen2.5-coder" matches "qwen2.5-coder:7b")
    available_set: set[str] = set()
    for m in available:
        if not m:
            continue
        name = m.strip().lower()
        available_set.add(name)
        if ":" in name:
            available_set.add(name.split(":")[0])

    missing: list[str] = []
    for role, model in (("classify", models.classify), ("generate", models.generate)):
        if not model:
            continue
        model_lower = model.strip().lower()
        base = model_lower.split(":")[0]
        if model_lower not in available_set and base not in available_set:
            missing.append(f"{role}={model}")

    if missing:
        hint = (
            "Pull with 'ollama pull <model>' or update config in development.toml"
            if provider == "ollama"
            else "Check the model id for your provider or update config in development.toml"
        )
        log.warning(
            "configured_models_not_available",
            provider=provider,
            missing=missing,
            available_count=len(available),
            hint=hint,
        )
    else:
        log.debug("models_validation_ok", provider=provider, models=[models.classify, models.generate])
    return missing
