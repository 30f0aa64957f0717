"""Configuration loader."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError
from rich.console import Console

from .models import ConfigModel, SourceConfig

console = Console()

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "blogpulse"


class Config:
    """Configuration manager."""

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """Initialize config manager."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_DIR / "config.yaml"
        self.config_path = config_path
        self._config: Optional[ConfigModel] = None

    @property
    def config(self) -> ConfigModel:
        """Get loaded config."""
        if self._config is None:
            self._config = load_config(self.config_path)
        return self._config

    @property
    def sources_path(self) -> Path:
        """Path of the sources file next to the config file."""
        return self.config_path.parent / "sources.yaml"

    def get_db_config(self) -> Dict[str, Any]:
        """Database settings with the password resolved from the environment."""
        return _resolve_secret(self.config.postgres.model_dump(), "password_env", "password")

    def get_llm_config(self) -> Dict[str, Any]:
        """LLM settings with the API key resolved from the environment."""
        return _resolve_secret(self.config.llm.model_dump(), "api_key_env", "api_key")

    def get_smtp_password(self) -> Optional[str]:
        """Resolve the SMTP password from the environment."""
        env_name = self.config.notifications.smtp_password_env
        if not env_name:
            return None
        return os.environ.get(env_name)


def _resolve_secret(settings: Dict[str, Any], env_key: str, target: str) -> Dict[str, Any]:
    env_name = settings.get(env_key)
    value = os.environ.get(env_name) if env_name else None
    if value:
        settings[target] = value
    return settings


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


def load_sources(sources_path: Path) -> List[SourceConfig]:
    """Load sources from YAML file, skipping invalid entries."""
    if not sources_path.exists():
        raise FileNotFoundError(f"Sources file not found: {sources_path}")

    try:
        with open(sources_path) as f:
            sources_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in sources file: {e}")

    if not sources_data or "sources" not in sources_data:
        return []

    sources = []
    for source_data in sources_data["sources"] or []:
        try:
            sources.append(SourceConfig(**source_data))
        except ValidationError as e:
            console.print(
                f"[yellow]Skipping invalid source {source_data.get('name', 'unknown')}: {e}[/yellow]"
            )

    return sources


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Save configuration to YAML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)


def save_sources(sources: List[SourceConfig], sources_path: Path) -> None:
    """Save sources to YAML file."""
    sources_path.parent.mkdir(parents=True, exist_ok=True)

    sources_data = {"sources": [s.model_dump() for s in sources]}

    with open(sources_path, "w") as f:
        yaml.dump(sources_data, f, default_flow_style=False, sort_keys=False)
