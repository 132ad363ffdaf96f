"""Settings persistence backed by a YAML file."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from pipewatch.constants.defaults import CONFIG_PATH_DEFAULT, CONFIG_PATH_ENV_VAR
from pipewatch.models.state.app_settings import (
    ConfigError,
    ConfigLoadError,
    ConfigSaveError,
    PipewatchSettings,
)

logger = logging.getLogger(__name__)


class ConfigManager:
    """Load and save PipewatchSettings.

    The file location is ``$PIPEWATCH_CONFIG`` when set, otherwise
    ``~/.config/pipewatch/settings.yaml``. A missing file yields defaults.
    """

    @staticmethod
    def config_path() -> Path:
        raw_path = os.environ.get(CONFIG_PATH_ENV_VAR) or CONFIG_PATH_DEFAULT
        return Path(raw_path).expanduser()

    @classmethod
    def load(cls, path: Path | None = None) -> PipewatchSettings:
        """Load settings from disk.

        Raises:
            ConfigLoadError: If the file exists but cannot be read or validated.
        """
        settings_path = path or cls.config_path()
        if not settings_path.exists():
            logger.debug("No settings file at %s, using defaults", settings_path)
            return PipewatchSettings()

        try:
            with settings_path.open(encoding="utf-8") as handle:
                raw = yaml.safe_load(handle) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigLoadError(f"Cannot read {settings_path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigLoadError(f"{settings_path} must contain a mapping")

        try:
            return PipewatchSettings.model_validate(raw)
        except ValidationError as exc:
            raise ConfigLoadError(f"Invalid settings in {settings_path}: {exc}") from exc

    @classmethod
    def save(cls, settings: PipewatchSettings, path: Path | None = None) -> None:
        """Persist settings to disk.

        Raises:
            ConfigSaveError: If the file cannot be written.
        """
        settings_path = path or cls.config_path()
        try:
            settings_path.parent.mkdir(parents=True, exist_ok=True)
            with settings_path.open("w", encoding="utf-8") as handle:
                yaml.safe_dump(
                    settings.model_dump(),
                    handle,
                    default_flow_style=False,
                    sort_keys=False,
                )
        except OSError as exc:
            raise ConfigSaveError(f"Cannot write {settings_path}: {exc}") from exc


__all__ = [
    "ConfigError",
    "ConfigLoadError",
    "ConfigManager",
    "ConfigSaveError",
    "PipewatchSettings",
]
