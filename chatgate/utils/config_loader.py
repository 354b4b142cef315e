"""Settings loader for model entries, proxy and global defaults."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from ..entities.config import GenericConfig, ProxySetting
from ..entities.options import GenericOptions, GlobalSettings
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "settings.yaml"


class ModelEntry(NamedTuple):
    """One named model from the settings file."""

    name: str
    config: GenericConfig
    options: GenericOptions


def _expand(value: Any) -> Any:
    """Expand ``${VAR}`` references in every string of a loaded YAML tree."""
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, dict):
        return {k: _expand(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand(v) for v in value]
    return value


def _as_json(value: Any) -> str:
    if value is None:
        return "{}"
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


class SettingsLoader:
    """Load and manage gateway settings from a YAML file."""

    def __init__(self, settings_path: Union[str, Path, None] = None):
        """
        Initialize settings loader.

        Args:
            settings_path: Settings YAML file (defaults to project config/settings.yaml)
        """
        if settings_path is None:
            project_root = Path(__file__).parent.parent.parent
            settings_path = project_root / "config" / DEFAULT_SETTINGS_FILE

        self.settings_path = Path(settings_path)
        self._settings: Optional[Dict[str, Any]] = None

    def load(self) -> Dict[str, Any]:
        """
        Load the settings file.

        ``config/.env`` next to the settings file is loaded first so that
        ``${VAR}`` references resolve.

        Returns:
            Settings dict with environment references expanded

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        if self._settings is not None:
            return self._settings

        if not self.settings_path.exists():
            raise ConfigurationError(f"Settings file not found: {self.settings_path}")

        env_path = self.settings_path.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML settings: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to load settings: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings root must be a mapping: {self.settings_path}")

        self._settings = _expand(data)
        logger.info(f"Loaded settings from: {self.settings_path}")
        return self._settings

    def get_global_settings(self) -> GlobalSettings:
        section = self.load().get("global") or {}
        try:
            return GlobalSettings.model_validate(section)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid global settings: {e}")

    def get_proxy(self) -> Optional[ProxySetting]:
        """Return the proxy setting, or None when the section is absent."""
        section = self.load().get("proxy")
        if not section:
            return None
        # YAML 1.1 reads a bare ``on`` key as the boolean True
        if True in section:
            section = dict(section)
            section["on"] = section.pop(True)
        try:
            return ProxySetting.model_validate(section)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid proxy settings: {e}")

    def list_models(self) -> List[str]:
        return list((self.load().get("models") or {}).keys())

    def get_model(self, name: str) -> ModelEntry:
        """
        Get a named model entry.

        Args:
            name: Key under ``models``

        Returns:
            Model entry with config and options as raw JSON strings

        Raises:
            ConfigurationError: If the model is unknown or has no provider
        """
        models = self.load().get("models") or {}
        if name not in models:
            raise ConfigurationError(
                f"Model '{name}' not found in settings (available: {', '.join(models) or 'none'})"
            )

        entry = models[name] or {}
        provider = entry.get("provider")
        if not provider:
            raise ConfigurationError(f"Model '{name}' has no provider")

        return ModelEntry(
            name=name,
            config=GenericConfig(provider=provider, config=_as_json(entry.get("config"))),
            options=GenericOptions(provider=provider, options=_as_json(entry.get("options"))),
        )

    def reload(self):
        """Reload settings from file."""
        self._settings = None
        logger.info("Settings reloaded")


# Global settings loader instance
_settings_loader = None


def get_settings_loader(settings_path: Union[str, Path, None] = None) -> SettingsLoader:
    """
    Get global settings loader instance.

    A different ``settings_path`` replaces the cached instance.
    """
    global _settings_loader

    if _settings_loader is None or (
        settings_path is not None and Path(settings_path) != _settings_loader.settings_path
    ):
        _settings_loader = SettingsLoader(settings_path)

    return _settings_loader


def load_settings(settings_path: Union[str, Path, None] = None) -> Dict[str, Any]:
    """Convenience function to load the settings dict."""
    return get_settings_loader(settings_path).load()
