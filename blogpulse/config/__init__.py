"""Configuration management for blogpulse."""

from .loader import Config, load_config, load_sources, save_config, save_sources
from .models import (
    ConfigModel,
    EnrichmentConfig,
    HarvestConfig,
    NotificationConfig,
    PipelineConfig,
    ResolverConfig,
    SourceConfig,
)

__all__ = [
    "Config",
    "ConfigModel",
    "EnrichmentConfig",
    "HarvestConfig",
    "NotificationConfig",
    "PipelineConfig",
    "ResolverConfig",
    "SourceConfig",
    "load_config",
    "load_sources",
    "save_config",
    "save_sources",
]
