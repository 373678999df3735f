"""Configuration loading."""

from src.infrastructure.config.toml_loader import default_config_dir, load_config

__all__ = ["default_config_dir", "load_config"]
