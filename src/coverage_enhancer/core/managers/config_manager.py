# src/coverage_enhancer/core/managers/config_manager.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from coverage_enhancer.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


def _load_settings(path: Path) -> Dict[str, Any]:
    """Reads a settings file, degrading to an empty mapping when it is unusable."""
    if not path.is_file():
        logger.warning("No settings file at %s, built-in defaults apply.", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to load settings from %s: %s", path, e, exc_info=True)
        return {}
    if not isinstance(data, dict):
        logger.error("Settings in %s must be a JSON object, ignoring them.", path)
        return {}
    return data


class ConfigManager:
    """
    Process-wide, read-only view of the packaged settings.json.
    Command line flags are applied on top by `EnhanceSettings.from_config`.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._sections = {}
            instance.reset()
            cls._instance = instance
        return cls._instance

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """Looks up a dotted key such as 'badge.timeout'."""
        node: Any = self._sections
        for key in key_path.split('.'):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return default if node is None else node

    def reset(self):
        """(Re)reads settings.json from the package."""
        path = PathUtils.get_settings_file()
        self._sections = _load_settings(path)
        logger.debug("Loaded %d settings section(s) from %s", len(self._sections), path)


config_manager = ConfigManager()
