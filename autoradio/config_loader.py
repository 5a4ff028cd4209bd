"""
Configuration Loader - Manages YAML configuration and environment variables
"""
import os
from typing import Any, Dict, Optional

import yaml

from autoradio.engine.config import EngineConfig, default_engine_config


class Config:
    """Configuration manager for the autoplay engine"""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = config_path
        self.config = self._load_config()
        self._validate_config()
        self._engine_config: Optional[EngineConfig] = None

    def _load_config(self) -> dict:
        """Load configuration from YAML file"""
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f)
        # An empty file is a valid "all defaults" config
        return loaded or {}

    def _validate_config(self):
        """Validate section shapes; engine keys are checked by default_engine_config()"""
        if not isinstance(self.config, dict):
            raise ValueError(f"Configuration root must be a mapping in {self.config_path}")
        for section in ('engine', 'logging', 'autoplay'):
            value = self.config.get(section)
            if value is not None and not isinstance(value, dict):
                raise ValueError(f"Configuration section '{section}' must be a mapping")

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            section: Configuration section
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        if section not in self.config or self.config[section] is None:
            return default
        return self.config[section].get(key, default)

    @property
    def engine_overrides(self) -> Dict[str, Any]:
        """Raw `engine:` section (per-section overrides of the engine defaults)"""
        return dict(self.config.get('engine') or {})

    def engine_config(self) -> EngineConfig:
        """
        Immutable engine configuration built from the `engine:` section.

        Raises:
            ValueError: unknown sections/keys or invalid values
        """
        if self._engine_config is None:
            self._engine_config = default_engine_config(self.engine_overrides)
        return self._engine_config

    @property
    def default_limit(self) -> int:
        """Get number of tracks returned per autoplay decision"""
        return int(self.get('autoplay', 'default_limit', 20))

    @property
    def log_level(self) -> str:
        """Get console log level (with environment variable override)"""
        return os.getenv('LOG_LEVEL') or str(self.get('logging', 'level', 'INFO')).upper()

    @property
    def log_file(self) -> Optional[str]:
        """Get optional log file path (with environment variable override)"""
        return os.getenv('LOG_FILE') or self.get('logging', 'file')

    @property
    def show_session_id(self) -> bool:
        """Check if console logs include the playback session id"""
        return bool(self.get('logging', 'show_session_id', False))
