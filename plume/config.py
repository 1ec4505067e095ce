"""
Config system - Layered configuration for the message layer.

Merge precedence (later overrides earlier):
defaults < config files (JSON/YAML) < .env file < environment variables < overrides
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass, fields, asdict
from pathlib import Path
import json
import logging
import os

from dotenv import dotenv_values

from .faults import ConfigInvalidFault


logger = logging.getLogger("plume.config")


@dataclass(frozen=True)
class MessageConfig:
    """Settings read by messages, streams and uploaded files."""

    default_content_type: str = "text/html; charset=utf-8"
    protocol_version: str = "1.1"
    upload_chunk_size: int = 8192
    temp_stream_max_memory: int = 2 * 1024 * 1024  # 2 MiB

    def to_dict(self) -> dict:
        return asdict(self)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = "PLUME_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list[str]] = None,
        env_prefix: str = "PLUME_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources with proper merge strategy.

        Args:
            paths: List of config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        logger.debug("Loaded configuration keys: %s", sorted(loader.config_data))
        return loader

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        from glob import glob

        for path_str in sorted(glob(pattern)):
            path = Path(path_str)

            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
            self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f)
            if data:
                self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert PLUME_SECTION__UPLOAD_CHUNK_SIZE to nested dict."""
        key = key[len(self.env_prefix):]

        # Split by double underscore for nested keys
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        parts = path.split(".")
        current = self.config_data

        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def to_config(self) -> MessageConfig:
        """
        Build a validated MessageConfig from the merged data.

        Unknown keys are ignored.

        Raises:
            ConfigInvalidFault: If a known key has an unusable value
        """
        values = {}
        for f in fields(MessageConfig):
            if f.name in self.config_data:
                values[f.name] = self.config_data[f.name]

        for name in ("upload_chunk_size", "temp_stream_max_memory"):
            if name in values:
                value = values[name]
                if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                    raise ConfigInvalidFault(name, f"expected a positive integer, got {value!r}")

        if "protocol_version" in values:
            from .message import PROTOCOL_VERSIONS

            values["protocol_version"] = str(values["protocol_version"])
            if values["protocol_version"] not in PROTOCOL_VERSIONS:
                raise ConfigInvalidFault(
                    "protocol_version",
                    f"expected one of {', '.join(PROTOCOL_VERSIONS)}",
                )

        if "default_content_type" in values and not isinstance(values["default_content_type"], str):
            raise ConfigInvalidFault("default_content_type", "expected a string")

        return MessageConfig(**values)

    def to_dict(self) -> dict:
        return self.config_data


# ============================================================================
# Active configuration
# ============================================================================

_active_config = MessageConfig()


def get_config() -> MessageConfig:
    """Return the configuration currently used for new messages and uploads."""
    return _active_config


def configure(config: MessageConfig) -> MessageConfig:
    """Install ``config`` as the active configuration and return it."""
    global _active_config
    if not isinstance(config, MessageConfig):
        raise ConfigInvalidFault("config", f"expected MessageConfig, got {type(config).__name__}")
    _active_config = config
    logger.debug("Active configuration: %s", config.to_dict())
    return config


def reset_config() -> MessageConfig:
    """Restore the default configuration."""
    return configure(MessageConfig())
