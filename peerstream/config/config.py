"""Configuration management for peerstream.

Provides centralized configuration with TOML support, validation, and
hierarchical loading from defaults → config file → environment → CLI.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import toml

from peerstream.models import (
    Config,
    ObservabilityConfig,
    ServerConfig,
    StreamConfig,
)
from peerstream.utils.exceptions import ConfigurationError
from peerstream.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "peerstream.toml"

# Environment variable → dotted config path
ENV_MAPPINGS: dict[str, str] = {
    # Server
    "PEERSTREAM_HOST": "server.host",
    "PEERSTREAM_PORT": "server.port",
    "PEERSTREAM_IDLE_TIMEOUT": "server.idle_timeout",
    "PEERSTREAM_CHUNK_SIZE": "server.chunk_size",
    # Stream
    "PEERSTREAM_INDEX": "stream.index",
    "PEERSTREAM_SELECT_ALL": "stream.select_all",
    "PEERSTREAM_SORT": "stream.sort",
    "PEERSTREAM_BLOCKLIST": "stream.blocklist",
    "PEERSTREAM_PEERS": "stream.peers",
    "PEERSTREAM_PEER_PORT": "stream.peer_port",
    "PEERSTREAM_CONNECTIONS": "stream.connections",
    "PEERSTREAM_REMOVE_ON_EXIT": "stream.remove_on_exit",
    # Observability
    "PEERSTREAM_LOG_LEVEL": "observability.log_level",
    "PEERSTREAM_LOG_FILE": "observability.log_file",
    "PEERSTREAM_STRUCTURED_LOGGING": "observability.structured_logging",
}

_LIST_PATHS = {"stream.peers"}
_BOOL_PATHS = {
    "stream.select_all",
    "stream.remove_on_exit",
    "observability.structured_logging",
}
_STRING_PATHS = {
    "server.host",
    "stream.sort",
    "stream.blocklist",
    "observability.log_level",
    "observability.log_file",
}

_config_manager: ConfigManager | None = None


def _parse_env_value(raw: str, path: str) -> bool | int | float | str | list[str]:
    if path in _LIST_PATHS:
        return [item.strip() for item in raw.split(",") if item.strip()]
    if path in _STRING_PATHS:
        return raw

    if path in _BOOL_PATHS:
        low = raw.lower()
        if low in {"true", "1", "yes", "on"}:
            return True
        if low in {"false", "0", "no", "off"}:
            return False
        return raw
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = d
    for p in parts[:-1]:
        cur = cur.setdefault(p, {})
    cur[parts[-1]] = value


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_file: str | Path | None = None, setup_log: bool = True):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for peerstream.toml
            setup_log: Configure logging from the loaded observability section

        """
        self.config_file = self._find_config_file(config_file)
        self.setup_log = setup_log
        self._overrides: dict[str, Any] = {}
        self.config = self._load_config()
        if setup_log:
            self._setup_logging()

    def _find_config_file(self, config_file: str | Path | None) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file).expanduser()

        search_paths = [
            Path.cwd() / CONFIG_FILE_NAME,
            Path.home() / ".config" / "peerstream" / CONFIG_FILE_NAME,
            Path.home() / f".{CONFIG_FILE_NAME}",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file, environment and overrides."""
        config_data: dict[str, Any] = {}

        if self.config_file is not None:
            if not self.config_file.exists():
                msg = f"Configuration file not found: {self.config_file}"
                raise ConfigurationError(msg)
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except (OSError, toml.TomlDecodeError) as e:
                msg = f"Failed to load config file {self.config_file}: {e}"
                raise ConfigurationError(msg) from e

        config_data = self._merge_config(config_data, self._get_env_config())
        config_data = self._merge_config(config_data, self._overrides)

        try:
            return Config(**config_data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}
        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            _set_nested(env_config, cfg_path, _parse_env_value(raw, cfg_path))
        return env_config

    def _merge_config(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def apply_overrides(self, overrides: dict[str, Any]) -> Config:
        """Apply command-line overrides on top of file and environment values.

        Keys are dotted config paths (``"server.port"``); ``None`` values are
        ignored so unset CLI options keep lower-precedence values.
        """
        for path, value in overrides.items():
            if value is None:
                continue
            _set_nested(self._overrides, path, value)
        self.config = self._load_config()
        if self.setup_log:
            self._setup_logging()
        return self.config

    def export(self) -> str:
        """Export current configuration as TOML."""
        return toml.dumps(self.config.model_dump(mode="json", exclude_none=True))

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        setup_logging(self.config.observability)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def init_config(config_file: str | Path | None = None) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file)
    return _config_manager


def set_config(new_config: Config) -> None:
    """Replace the global configuration at runtime."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(None, setup_log=False)
    _config_manager.config = new_config
    _config_manager._setup_logging()  # noqa: SLF001


def get_server_config() -> ServerConfig:
    """Get server configuration."""
    return get_config().server


def get_stream_config() -> StreamConfig:
    """Get stream configuration."""
    return get_config().stream


def get_observability_config() -> ObservabilityConfig:
    """Get observability configuration."""
    return get_config().observability
