"""Configuration manager with hot-reload support."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from snapkeep.config.providers import (
    ConfigProvider,
    LayeredConfigProvider,
    LocalFileConfigProvider,
)
from snapkeep.config.schema import SnapshotSettings, apply_deletions, deep_merge
from snapkeep.utils.logger import get_logger

logger = get_logger("config.manager")


class ConfigManager:
    """Manages application configuration with hot-reload support.

    Supports multiple providers (local file, layered overrides) and allows
    registering callbacks for configuration changes.
    """

    def __init__(self, provider: ConfigProvider):
        self.provider = provider
        self._config: dict[str, Any] = {}
        self._change_callbacks: list[Callable[[dict[str, Any]], None]] = []

    async def initialize(self) -> None:
        """Load the initial configuration."""
        self._config = await self.provider.load()
        logger.info("Configuration initialized", config_keys=list(self._config.keys()))

    async def start_watching(self) -> None:
        await self.provider.watch(self._on_config_changed)

    async def stop_watching(self) -> None:
        await self.provider.stop_watching()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key."""
        return self._config.get(key, default)

    def snapshot_settings(self) -> SnapshotSettings:
        """Return the current snapshot policy as a validated model.

        Falls back to model defaults when the section is missing or invalid so
        a broken hot-reload never disables the safety net silently.
        """
        section = self._config.get("snapshots") or {}
        try:
            return SnapshotSettings.model_validate(section)
        except ValidationError as e:
            logger.warning(
                "Invalid snapshots config section, using defaults", error=str(e)
            )
            return SnapshotSettings()

    async def update_with_deletions(self, updates: dict[str, Any]) -> None:
        """Merge updates into the config and persist; null values delete keys."""
        self._config = deep_merge(self._config, updates)
        self._config = apply_deletions(self._config, updates)

        if (
            hasattr(self.provider, "_user_config")
            and self.provider._user_config is not None
        ):
            user_cfg = self.provider._user_config
            if not isinstance(user_cfg, dict):
                user_cfg = {}
            user_cfg = deep_merge(user_cfg, updates)
            user_cfg = apply_deletions(user_cfg, updates)
            self.provider._user_config = user_cfg
            await self.provider.save(user_cfg)
        else:
            await self.provider.save(self._config)

        logger.info("Configuration updated with deletions", keys=list(updates.keys()))
        self._notify_callbacks()

    def get_all(self) -> dict[str, Any]:
        return self._config.copy()

    def register_change_callback(
        self, callback: Callable[[dict[str, Any]], None]
    ) -> None:
        self._change_callbacks.append(callback)

    def _on_config_changed(self, new_config: dict[str, Any]) -> None:
        old_config = self._config.copy()
        self._config = new_config

        changed_keys = []
        for key in set(old_config.keys()) | set(new_config.keys()):
            if old_config.get(key) != new_config.get(key):
                changed_keys.append(key)

        if changed_keys:
            logger.info("Configuration reloaded", changed_keys=changed_keys)
        else:
            logger.debug("Configuration reloaded with no changes")

        self._notify_callbacks()

    def _notify_callbacks(self) -> None:
        for callback in self._change_callbacks:
            try:
                callback(self._config.copy())
            except Exception as e:
                logger.error(
                    "Error in config change callback",
                    error=str(e),
                    callback=getattr(callback, "__name__", repr(callback)),
                )


_config_manager: ConfigManager | None = None


def create_config_manager(
    global_config_dir: Path,
    *,
    local_config_path: Path | None = None,
    defaults: dict[str, Any] | None = None,
) -> ConfigManager:
    """Create the global config manager.

    Args:
        global_config_dir: Directory to store global config.json
        local_config_path: Optional project-scoped config.json for overrides
        defaults: Default configuration values
    """
    global _config_manager

    config_path = global_config_dir / "config.json"
    base_provider = LocalFileConfigProvider(config_path, defaults=defaults)
    providers: list[ConfigProvider] = [base_provider]
    if local_config_path:
        providers.append(
            LocalFileConfigProvider(
                local_config_path, defaults={}, create_if_missing=False
            )
        )

    if len(providers) == 1:
        provider: ConfigProvider = base_provider
    else:
        provider = LayeredConfigProvider(providers, primary_index=0)
    _config_manager = ConfigManager(provider)

    logger.info("Config manager created", config_path=str(config_path))
    return _config_manager


def get_config_manager() -> ConfigManager:
    """Get the global config manager instance."""
    if _config_manager is None:
        raise RuntimeError(
            "Config manager not initialized. Call create_config_manager() first."
        )
    return _config_manager
