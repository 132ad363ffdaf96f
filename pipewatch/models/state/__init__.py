"""Application state models."""

from pipewatch.models.state.app_settings import (
    ConfigError,
    ConfigLoadError,
    ConfigSaveError,
    PipewatchSettings,
)
from pipewatch.models.state.config_manager import ConfigManager

__all__ = [
    "ConfigError",
    "ConfigLoadError",
    "ConfigManager",
    "ConfigSaveError",
    "PipewatchSettings",
]
