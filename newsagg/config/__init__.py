"""Configuration management for the News Aggregator."""

from .loader import Config, default_config_path, load_config, save_config
from .models import (
    CleanupConfig,
    ConfigModel,
    FetchConfig,
    GuardianConfig,
    NewsApiConfig,
    NytConfig,
    PostgresConfig,
    ProviderConfig,
)

__all__ = [
    "Config",
    "ConfigModel",
    "CleanupConfig",
    "FetchConfig",
    "GuardianConfig",
    "NewsApiConfig",
    "NytConfig",
    "PostgresConfig",
    "ProviderConfig",
    "default_config_path",
    "load_config",
    "save_config",
]
