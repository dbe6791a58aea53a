"""Configuration loader."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from .models import ConfigModel, ProviderConfig

CONFIG_PATH_ENV = "NEWSAGG_CONFIG"


def default_config_path() -> Path:
    """Get the config path, honouring the NEWSAGG_CONFIG override."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "newsagg" / "config.yaml"


class Config:
    """Configuration manager."""

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """Initialize config manager."""
        if config_path is None:
            config_path = default_config_path()
        self.config_path = config_path
        self._config: Optional[ConfigModel] = None

    @classmethod
    def from_model(cls, model: ConfigModel) -> "Config":
        """Wrap an already built configuration model."""
        config = cls(Path("<memory>"))
        config._config = model
        return config

    @property
    def config(self) -> ConfigModel:
        """Get loaded config."""
        if self._config is None:
            self._config = load_config(self.config_path)
        return self._config

    def get_db_config(self) -> Dict[str, Any]:
        """Get database configuration dict."""
        db_config = self.config.postgres.model_dump()

        # Handle password from environment if specified
        if db_config.get("password_env"):
            password = os.environ.get(db_config["password_env"])
            if password:
                db_config["password"] = password

        return db_config

    def get_api_key(self, provider: ProviderConfig) -> Optional[str]:
        """Resolve a provider API key, preferring the environment."""
        if provider.api_key_env:
            api_key = os.environ.get(provider.api_key_env)
            if api_key:
                return api_key
        return provider.api_key or None

    def validate(self) -> List[str]:
        """
        Check that every enabled provider and the database are usable.

        Returns:
            List of configuration errors, empty when valid
        """
        errors = []

        for name, provider in self.config.providers.items():
            if not provider.enabled:
                continue
            if not self.get_api_key(provider):
                hint = f" ({provider.api_key_env})" if provider.api_key_env else ""
                errors.append(f"{name} API key is missing{hint}")
            if not provider.base_url:
                errors.append(f"{name} base URL is missing")

        postgres = self.config.postgres
        if not postgres.host or not postgres.database or not postgres.user:
            errors.append("Database configuration is invalid (host, database and user are required)")

        return errors


def load_config(config_path: Path) -> ConfigModel:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}

        return ConfigModel(**config_data)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}")


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Save configuration to YAML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(
            config.model_dump(by_alias=True),
            f,
            default_flow_style=False,
            sort_keys=False,
        )
