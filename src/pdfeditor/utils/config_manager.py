"""
pdfeditor - Configuration Manager

This module provides centralized JSON-based configuration management.
It handles loading, saving, and upgrading the settings file.
"""

import copy
import json
import os
from typing import Any, Final

from pdfeditor.config import (
    CONFIG_DIR,
    DEFAULT_DRAG_THRESHOLD_PX,
    DEFAULT_FILENAME_PREFIX,
    DEFAULT_RENDER_TIMEOUT_SECONDS,
    DEFAULT_THUMBNAIL_WIDTH,
)
from pdfeditor.utils.exceptions import ConfigurationError
from pdfeditor.utils.logger import logger

# Configuration file path
CONFIG_FILE_PATH: Final[str] = os.path.join(CONFIG_DIR, "settings.json")

# Default configuration values
DEFAULT_CONFIG: Final[dict[str, Any]] = {
    "version": 1,
    "editor": {
        "drag_threshold_px": DEFAULT_DRAG_THRESHOLD_PX,
        "grid_columns": 4,
    },
    "render": {
        "thumbnail_width": DEFAULT_THUMBNAIL_WIDTH,
        "timeout_seconds": DEFAULT_RENDER_TIMEOUT_SECONDS,
    },
    "output": {
        "filename_prefix": DEFAULT_FILENAME_PREFIX,
        "author": "",
        "destination_folder": "",
    },
}


class ConfigManager:
    """Manages application configuration in JSON format.

    Values are addressed by dot-separated paths such as
    ``"editor.drag_threshold_px"``. Missing keys in an older settings file
    are filled in from the defaults on load.
    """

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize the configuration manager.

        Args:
            config_path: Optional path to the configuration file.
                        Defaults to CONFIG_FILE_PATH.
        """
        self.config_path = config_path or CONFIG_FILE_PATH
        self._config: dict[str, Any] = {}

        os.makedirs(os.path.dirname(self.config_path), exist_ok=True)

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file or create default."""
        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, encoding="utf-8") as f:
                    self._config = json.load(f)
                logger.info("Configuration loaded from JSON")

                self._upgrade_config()

            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Error loading config: {e}")
                self._config = self._get_default_config()
        else:
            self._config = self._get_default_config()
            self.save()

    def _get_default_config(self) -> dict[str, Any]:
        """Get a copy of the default configuration.

        Returns:
            Deep copy of default configuration dictionary.
        """
        return copy.deepcopy(DEFAULT_CONFIG)

    def _upgrade_config(self) -> None:
        """Fill in missing keys and bump the version if needed."""
        self._merge_defaults(self._config, DEFAULT_CONFIG)

        current_version = self._config.get("version", 0)
        if current_version < DEFAULT_CONFIG["version"]:
            self._config["version"] = DEFAULT_CONFIG["version"]
            logger.info(f"Configuration upgraded to version {DEFAULT_CONFIG['version']}")

    def _merge_defaults(self, config: dict, defaults: dict) -> None:
        """Merge default values into config for missing keys.

        Args:
            config: Current configuration dictionary.
            defaults: Default configuration dictionary.
        """
        for key, value in defaults.items():
            if key not in config:
                config[key] = copy.deepcopy(value)
            elif isinstance(value, dict) and isinstance(config.get(key), dict):
                self._merge_defaults(config[key], value)

    def save(self) -> bool:
        """Save configuration to file.

        Returns:
            True if save was successful, False otherwise.
        """
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)
            logger.debug("Configuration saved to JSON")
            return True
        except OSError as e:
            logger.error(f"Error saving config: {e}")
            return False

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get a configuration value by dot-separated path.

        Args:
            key_path: Dot-separated path to the config value (e.g., "editor.grid_columns")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_int(self, key_path: str, default: int, minimum: int = 0) -> int:
        """Get an integer setting, validating its type and lower bound.

        Args:
            key_path: Dot-separated path to the config value
            default: Value used when the key is missing
            minimum: Smallest accepted value

        Returns:
            The integer value

        Raises:
            ConfigurationError: If the stored value is not an integer or is too small
        """
        value = self.get(key_path, default)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(key_path, f"expected an integer, got {value!r}")
        if value < minimum:
            raise ConfigurationError(key_path, f"must be at least {minimum}")
        return value

    def set(self, key_path: str, value: Any, save_immediately: bool = True) -> None:
        """Set a configuration value by dot-separated path.

        Args:
            key_path: Dot-separated path to the config value
            value: Value to set
            save_immediately: Whether to save to file immediately
        """
        keys = key_path.split(".")
        config = self._config

        # Navigate to parent key
        for key in keys[:-1]:
            if key not in config:
                config[key] = {}
            config = config[key]

        config[keys[-1]] = value

        if save_immediately:
            self.save()

