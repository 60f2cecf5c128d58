# src/a11y_shell/core/managers/config_manager.py
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from a11y_shell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

# Points at a JSON file whose keys override the packaged settings.json.
SETTINGS_ENV_VAR = "A11Y_SETTINGS"

_TRUE_STRINGS = {"1", "true", "yes", "on"}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_json(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


class ConfigManager:
    """
    Singleton holding the auditor's runtime settings.

    Values come from the packaged settings.json, optionally overlaid with the
    file named by $A11Y_SETTINGS. `config set` changes only the in-memory copy.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._config = {}
            cls._instance.reset()
        return cls._instance

    def get_all(self) -> Dict[str, Any]:
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Looks up a dotted key such as 'sampling.initial_sample_size'.
        Missing keys and explicit nulls both yield `default`.
        """
        node: Any = self._config
        for key in key_path.split('.'):
            if not isinstance(node, dict):
                return default
            node = node.get(key)
        return default if node is None else node

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Stores `value` under a dotted key, creating sections as needed.
        Strings are cast to the type of the value they replace.
        """
        *sections, leaf = key_path.split('.')
        node = self._config
        for section in sections:
            node = node.setdefault(section, {})
            if not isinstance(node, dict):
                logger.error("Cannot set '%s': '%s' is not a section.", key_path, section)
                return False

        current = node.get(leaf)
        if isinstance(current, bool) and isinstance(value, str):
            value = value.strip().lower() in _TRUE_STRINGS
        elif current is not None and not isinstance(current, (dict, list)):
            try:
                value = type(current)(value)
            except (ValueError, TypeError):
                logger.warning(
                    "Could not cast new value for '%s' to %s. Storing as string.",
                    key_path, type(current).__name__
                )

        node[leaf] = value
        logger.info("Configuration updated: %s = %s", key_path, value)
        return True

    def reset(self) -> None:
        """Reloads settings.json and the $A11Y_SETTINGS overlay, dropping in-memory edits."""
        defaults_path = PathUtils.get_shell_package_root() / "settings.json"
        try:
            config = _read_json(defaults_path)
        except FileNotFoundError:
            logger.warning("settings.json not found at %s. Using empty config.", defaults_path)
            config = {}
        except (OSError, ValueError) as e:
            logger.error("Failed to load settings.json: %s", e, exc_info=True)
            config = {}

        override = os.environ.get(SETTINGS_ENV_VAR)
        if override:
            try:
                config = _deep_merge(config, _read_json(Path(override)))
                logger.debug("Applied settings overrides from %s.", override)
            except (OSError, ValueError) as e:
                logger.error("Ignoring settings overrides from %s: %s", override, e)

        self._config = config
        logger.debug("Configuration has been (re)loaded.")


# The global singleton instance that the entire application will use.
config_manager = ConfigManager()
