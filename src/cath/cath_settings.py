"""
User settings for cath, read from a YAML file.
"""

from dataclasses import dataclass, field
import logging
import os
from typing import Any, Dict, List

import yaml

from hilite.theme_registry import DEFAULT_THEME_NAME


DEFAULT_SETTINGS_PATH = os.path.join("~", ".cath", "config.yaml")


class SettingsError(Exception):
    """Raised when a settings file cannot be read or is malformed."""

    def __init__(self, message: str, error_details: Dict[str, Any] | None = None) -> None:
        """
        Initialize settings error.

        Args:
            message: Error message
            error_details: Additional error details
        """
        super().__init__(message)
        self.error_details = error_details


@dataclass
class CathSettings:
    """
    Settings that apply when no command line option overrides them.

    Attributes:
        theme: Name of the theme to use
        line_numbers: Show line numbers by default
        background: Paint the theme's background colour
        grammar_dirs: Extra grammar files or directories, loaded after the bundled grammars
        theme_dirs: Extra theme files or directories, loaded after the bundled themes
        log_file: Path of a rotating debug log, or None for no log file
    """
    theme: str = DEFAULT_THEME_NAME
    line_numbers: bool = False
    background: bool = False
    grammar_dirs: List[str] = field(default_factory=list)
    theme_dirs: List[str] = field(default_factory=list)
    log_file: str | None = None

    _logger = logging.getLogger("CathSettings")

    @classmethod
    def load(cls, settings_path: str, required: bool = False) -> "CathSettings":
        """
        Load settings from a YAML file.

        Args:
            settings_path: Path to the settings file; `~` is expanded
            required: If False, a missing file gives the default settings

        Returns:
            The settings

        Raises:
            SettingsError: If the file is required but missing, cannot be read, or is malformed
        """
        path = os.path.expanduser(settings_path)
        if not os.path.exists(path):
            if required:
                raise SettingsError(f"Settings file not found: {settings_path}", {"path": path})

            return cls()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

        except OSError as e:
            raise SettingsError(f"Cannot read settings file {settings_path}: {e}", {"path": path}) from e

        except yaml.YAMLError as e:
            raise SettingsError(f"Invalid YAML in settings file {settings_path}: {e}", {"path": path}) from e

        # An empty file is the same as no settings
        if data is None:
            return cls()

        if not isinstance(data, dict):
            raise SettingsError(f"Settings file {settings_path} must contain a mapping", {"path": path})

        return cls.from_dict(data, settings_path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], origin: str = "<settings>") -> "CathSettings":
        """
        Build settings from a decoded mapping.

        Unknown keys are logged and ignored.

        Args:
            data: The settings mapping
            origin: Where the mapping came from, used in error messages

        Returns:
            The settings

        Raises:
            SettingsError: If a value has the wrong type
        """
        for key in data:
            if key not in cls.__dataclass_fields__:
                cls._logger.warning("Ignoring unknown setting '%s' in %s", key, origin)

        settings = cls()

        if 'theme' in data:
            settings.theme = cls._string(data, 'theme', origin)

        if 'line_numbers' in data:
            settings.line_numbers = cls._boolean(data, 'line_numbers', origin)

        if 'background' in data:
            settings.background = cls._boolean(data, 'background', origin)

        if 'grammar_dirs' in data:
            settings.grammar_dirs = cls._paths(data, 'grammar_dirs', origin)

        if 'theme_dirs' in data:
            settings.theme_dirs = cls._paths(data, 'theme_dirs', origin)

        if data.get('log_file') is not None:
            settings.log_file = os.path.expanduser(cls._string(data, 'log_file', origin))

        return settings

    @staticmethod
    def _string(data: Dict[str, Any], key: str, origin: str) -> str:
        value = data[key]
        if not isinstance(value, str) or not value.strip():
            raise SettingsError(f"{origin}: '{key}' must be a non-empty string", {"key": key})

        return value.strip()

    @staticmethod
    def _boolean(data: Dict[str, Any], key: str, origin: str) -> bool:
        value = data[key]
        if not isinstance(value, bool):
            raise SettingsError(f"{origin}: '{key}' must be true or false", {"key": key})

        return value

    @staticmethod
    def _paths(data: Dict[str, Any], key: str, origin: str) -> List[str]:
        value = data[key]
        if value is None:
            return []

        if isinstance(value, str):
            value = [value]

        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            raise SettingsError(f"{origin}: '{key}' must be a path or a list of paths", {"key": key})

        return [os.path.expanduser(p) for p in value]
