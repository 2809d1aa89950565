"""Configuration settings for snapkeep.

This module provides a Settings class that wraps the ConfigManager,
providing property-based access to configuration values with hot-reload support.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from snapkeep.config.constants import DEFAULT_DATA_DIR
from snapkeep.config.manager import ConfigManager
from snapkeep.config.schema import SnapshotSettings


class Settings:
    """Application settings with hot-reload support.

    Values come from the ConfigManager when one is attached, otherwise from
    environment variables, otherwise from defaults.
    """

    def __init__(self, config_manager: ConfigManager | None = None):
        self._config_manager = config_manager

    def attach(self, config_manager: ConfigManager) -> None:
        self._config_manager = config_manager

    def _get(
        self,
        key: str,
        default: Any,
        env_key: str | None = None,
    ) -> Any:
        """Get config value from manager, fallback to env, then default."""
        if self._config_manager:
            if "." in key:
                cfg_obj: object = self._config_manager.get_all()
                for part in key.split("."):
                    if isinstance(cfg_obj, dict) and part in cfg_obj:
                        cfg_obj = cfg_obj[part]
                    else:
                        cfg_obj = None
                        break
                if cfg_obj is not None:
                    return cfg_obj
            else:
                value = self._config_manager.get(key)
                if value is not None:
                    return value
        if env_key and (env_val := os.getenv(env_key)):
            if isinstance(default, bool):
                return env_val.lower() in ("true", "1", "yes")
            elif isinstance(default, int):
                return int(env_val)
            return env_val
        return default

    # Snapshot policy
    @property
    def snapshot_settings(self) -> SnapshotSettings:
        if self._config_manager:
            return self._config_manager.snapshot_settings()
        return SnapshotSettings()

    # Storage
    @property
    def storage_base_path(self) -> Path:
        raw = self._get("storage.base_path", DEFAULT_DATA_DIR, "SNAPKEEP_DATA_DIR")
        return Path(raw).expanduser().resolve()

    # Server Configuration
    @property
    def server_host(self) -> str:
        return self._get("server_host", "localhost", "SERVER_HOST")

    @property
    def server_port(self) -> int:
        return self._get("server_port", 8766, "SERVER_PORT")

    # Logging Configuration
    @property
    def log_level(self) -> str:
        return self._get("log_level", "INFO", "LOG_LEVEL")

    @property
    def log_format(self) -> str:
        return self._get("log_format", "pretty", "LOG_FORMAT")

    @property
    def log_colors(self) -> bool:
        return self._get("log_colors", True, "LOG_COLORS")


# Global settings instance (attached to the config manager at startup)
settings = Settings()
