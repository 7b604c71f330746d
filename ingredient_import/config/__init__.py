"""Configuration loading (YAML validated against a bundled JSON schema)."""

from .loader import ConfigError, DatabaseConfig, ImportConfig, LimitsConfig, default_config, load_config

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "ImportConfig",
    "LimitsConfig",
    "default_config",
    "load_config",
]
