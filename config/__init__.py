"""
Configuration Module for the Invoice Emissions System.

Keyword tables, emission factors and finance constants are read from
``settings.yaml`` and the rule tables under ``config/rules/``; nothing that
a deployment may want to tune is hard-coded in the extraction logic.

Values are addressed with dot notation::

    from config import get_config
    rate = get_config("finance.discount_rate", 0.08)
"""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional

from ecoinvoice.utils.exceptions import ConfigurationError

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_SETTINGS = Path(__file__).parent / "settings.yaml"


class ConfigurationManager:
    """
    Process-wide access to settings.yaml.

    The first instantiation decides which file is loaded; later calls
    return the same object until reset() is called.

    Example:
        >>> config = ConfigurationManager()
        >>> config.get("extraction.currency.default")
        'NOK'
        >>> config.path("paths.category_rules").name
        'categories.yaml'
    """

    _instance: Optional['ConfigurationManager'] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        if self._initialized:
            return

        self.config_path = Path(config_path) if config_path else DEFAULT_SETTINGS
        self._config = self._load(self.config_path)
        self._initialized = True

    @staticmethod
    def _load(path: Path) -> Dict[str, Any]:
        """
        Read and validate a settings file.

        Raises:
            ConfigurationError: If the file is missing, is not valid YAML
                or does not hold a mapping at the top level.
        """
        if not path.is_file():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                details={'path': str(path)}
            )

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid configuration file {path}: {e}",
                details={'path': str(path)}
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {path} must contain a mapping",
                details={'path': str(path)}
            )

        # Relative locations are resolved against the project root
        for key, value in (data.get('paths') or {}).items():
            if value and not Path(value).is_absolute():
                data['paths'][key] = str(PROJECT_ROOT / value)

        return data

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Example:
            >>> config.get("emissions.grid_kg_per_kwh")
            0.17
            >>> config.get("nonexistent.key", "fallback")
            'fallback'
        """
        value = self._config
        try:
            for part in key.split('.'):
                value = value[part]
            return value
        except (KeyError, TypeError):
            return default

    def path(self, key: str, default: Optional[str] = None) -> Path:
        """
        Get a configured location as a Path.

        Raises:
            ConfigurationError: If the key is unset and no default is given.
        """
        value = self.get(key, default)
        if not value:
            raise ConfigurationError(f"No path configured for '{key}'")
        path = Path(value)
        return path if path.is_absolute() else PROJECT_ROOT / path

    @classmethod
    def reset(cls) -> None:
        """Drop the loaded settings, e.g. to switch to another file."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """Shortcut for ConfigurationManager().get(key, default)."""
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config', 'PROJECT_ROOT']
