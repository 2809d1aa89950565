"""Configuration providers - abstract and concrete implementations."""

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from snapkeep.config.schema import ConfigValidationError, deep_merge, normalize_config
from snapkeep.utils.logger import get_logger

logger = get_logger("config.providers")


class ConfigProvider(ABC):
    """Abstract base class for configuration providers."""

    @abstractmethod
    async def load(self) -> dict[str, Any]:
        """Load configuration from the provider."""
        pass

    @abstractmethod
    async def save(self, config: dict[str, Any]) -> None:
        """Save configuration to the provider."""
        pass

    @abstractmethod
    async def watch(self, callback: Callable[[dict[str, Any]], None]) -> None:
        """Watch for configuration changes and call callback when changed."""
        pass

    @abstractmethod
    async def stop_watching(self) -> None:
        """Stop watching for configuration changes."""
        pass


class LocalFileConfigProvider(ConfigProvider):
    """Configuration provider that stores config in a local JSON file."""

    def __init__(
        self,
        config_path: Path,
        defaults: dict[str, Any] | None = None,
        *,
        create_if_missing: bool = True,
    ):
        self.config_path = config_path
        self.defaults = defaults or {}
        self._observer: Any = None
        self._callback: Callable[[dict[str, Any]], None] | None = None
        self._last_mtime: float | None = None
        self._last_valid_config: dict[str, Any] | None = None
        # Original user config without defaults
        self._user_config: dict[str, Any] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self.create_if_missing = create_if_missing

    async def load(self) -> dict[str, Any]:
        """Load configuration from file, creating with defaults if not exists."""
        if not self.config_path.exists():
            if not self.create_if_missing:
                logger.info(
                    "Config file not found, skipping auto-create",
                    path=str(self.config_path),
                )
                merged = self.defaults.copy()
                self._last_valid_config = merged.copy()
                self._user_config = {}
                return merged
            logger.info(
                "Config file not found, creating with defaults",
                path=str(self.config_path),
            )
            await self.save(self.defaults.copy())
            self._last_valid_config = self.defaults.copy()
            self._user_config = self.defaults.copy()
            return self.defaults.copy()

        try:
            content = self.config_path.read_text(encoding="utf-8")
            config = json.loads(content)
            self._last_mtime = self.config_path.stat().st_mtime

            merged = deep_merge(self.defaults, config)
            normalized = normalize_config(merged)
            if not self.defaults:
                # Override layers only contribute the keys they set
                normalized = merged

            self._last_valid_config = normalized.copy()
            self._user_config = config.copy()

            logger.debug("Config loaded from file", path=str(self.config_path))
            return normalized
        except json.JSONDecodeError as e:
            logger.error(
                "Invalid JSON syntax in config file",
                error=str(e),
                line=e.lineno,
                column=e.colno,
                path=str(self.config_path),
            )
            return self._fallback_config()
        except ConfigValidationError as exc:
            logger.error(
                "Invalid configuration structure",
                errors=exc.errors,
                path=str(self.config_path),
            )
            raise
        except OSError as e:
            logger.error(
                "Failed to load config",
                error=str(e),
                path=str(self.config_path),
            )
            return self._fallback_config()

    def _fallback_config(self) -> dict[str, Any]:
        if self._last_valid_config is not None:
            logger.warning(
                "Using last valid configuration due to error",
                path=str(self.config_path),
            )
            return self._last_valid_config.copy()
        logger.warning(
            "No previous valid config, using defaults",
            path=str(self.config_path),
        )
        return self.defaults.copy()

    async def save(self, config: dict[str, Any]) -> None:
        """Atomically save configuration to file."""
        try:
            merged = normalize_config(deep_merge(self.defaults, config))
        except ConfigValidationError as exc:
            logger.error(
                "Refusing to save invalid configuration",
                errors=exc.errors,
                path=str(self.config_path),
            )
            raise

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.config_path.with_suffix(".tmp")
            content = json.dumps(merged, ensure_ascii=False, indent=2)
            tmp_path.write_text(content, encoding="utf-8")
            tmp_path.replace(self.config_path)

            self._last_mtime = self.config_path.stat().st_mtime
            self._user_config = merged.copy()
            self._last_valid_config = merged.copy()
            logger.debug("Config saved to file", path=str(self.config_path))
        except Exception as e:
            logger.error(
                "Failed to save config",
                error=str(e),
                path=str(self.config_path),
            )
            raise

    async def watch(self, callback: Callable[[dict[str, Any]], None]) -> None:
        """Watch for file changes and reload configuration."""
        self._callback = callback
        self._loop = asyncio.get_running_loop()

        class ConfigFileHandler(FileSystemEventHandler):
            def __init__(self, provider: LocalFileConfigProvider):
                self.provider = provider

            def _handle_event(self, event):
                if event.is_directory:
                    return

                if (
                    Path(event.src_path).resolve()
                    != self.provider.config_path.resolve()
                ):
                    return

                # Duplicate events carry the same mtime
                try:
                    current_mtime = self.provider.config_path.stat().st_mtime
                    if self.provider._last_mtime == current_mtime:
                        return
                except FileNotFoundError:
                    if self.provider.create_if_missing:
                        return

                logger.debug("Config file changed, reloading", path=event.src_path)

                if self.provider._loop and not self.provider._loop.is_closed():
                    asyncio.run_coroutine_threadsafe(
                        self.provider._handle_file_change(), self.provider._loop
                    )

            def on_modified(self, event):
                self._handle_event(event)

            def on_created(self, event):
                self._handle_event(event)

        self._observer = Observer()
        event_handler = ConfigFileHandler(self)

        # Watching the file itself is unreliable on some platforms
        watch_dir = self.config_path.parent
        watch_dir.mkdir(parents=True, exist_ok=True)
        self._observer.schedule(event_handler, str(watch_dir), recursive=False)
        self._observer.start()

        logger.info("Started watching config file", path=str(self.config_path))

    async def _handle_file_change(self) -> None:
        try:
            new_config = await self.load()
            if self._callback:
                self._callback(new_config)
        except Exception as e:
            logger.error("Error handling config file change", error=str(e))

    async def stop_watching(self) -> None:
        """Stop watching for file changes."""
        if self._observer:
            try:
                loop = asyncio.get_running_loop()
                await asyncio.wait_for(
                    loop.run_in_executor(None, self._observer.stop), timeout=2.0
                )
                await asyncio.wait_for(
                    loop.run_in_executor(
                        None, lambda: self._observer.join(timeout=1.0)
                    ),
                    timeout=2.0,
                )
                logger.info("Stopped watching config file")
            except (TimeoutError, asyncio.CancelledError) as e:
                logger.debug(f"Observer stop interrupted: {type(e).__name__}")
                self._observer.stop()
            finally:
                self._observer = None


class LayeredConfigProvider(ConfigProvider):
    """Configuration provider that merges multiple config sources.

    Layers are ordered from lowest to highest precedence. Writes go to the
    primary provider (typically the global config); later layers hold
    per-project overrides.
    """

    def __init__(
        self,
        providers: list[ConfigProvider],
        *,
        primary_index: int = 0,
    ):
        if not providers:
            raise ValueError("LayeredConfigProvider requires at least one provider")
        if primary_index < 0 or primary_index >= len(providers):
            raise ValueError("primary_index must point to an existing provider layer")

        self.providers = providers
        self.primary_index = primary_index
        self._layer_configs: list[dict[str, Any]] = [{} for _ in providers]
        self._callback: Callable[[dict[str, Any]], None] | None = None

    def _merge(self) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for cfg in self._layer_configs:
            merged = deep_merge(merged, cfg)
        return merged

    def _emit(self) -> None:
        if self._callback:
            self._callback(self._merge())

    async def load(self) -> dict[str, Any]:
        for idx, provider in enumerate(self.providers):
            cfg = await provider.load()
            self._layer_configs[idx] = cfg
        return self._merge()

    async def save(self, config: dict[str, Any]) -> None:
        """Persist updates via the primary (writable) provider."""
        primary = self.providers[self.primary_index]
        await primary.save(config)
        self._layer_configs[self.primary_index] = await primary.load()
        self._emit()

    async def watch(self, callback: Callable[[dict[str, Any]], None]) -> None:
        self._callback = callback

        async def _attach(idx: int, provider: ConfigProvider) -> None:
            def handle_change(new_config: dict[str, Any]) -> None:
                self._layer_configs[idx] = new_config
                self._emit()

            await provider.watch(handle_change)

        for idx, provider in enumerate(self.providers):
            await _attach(idx, provider)

    async def stop_watching(self) -> None:
        for provider in self.providers:
            await provider.stop_watching()
