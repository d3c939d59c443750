"""
Settings master configuration and global helpers.
"""

from __future__ import annotations

import dataclasses
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from .client import ClientConfig
from .logging import LoggingConfig


@dataclass
class Settings:
    """
    Master configuration for the Deta client.

    Aggregates all configuration sections into a single object that can be
    loaded from environment variables, files, or constructed programmatically.
    """

    client: ClientConfig = field(default_factory=ClientConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, prefix: str = "DETA_") -> Settings:
        """
        Load settings from environment variables.

        Example:
            DETA_PROJECT_KEY=a0abcyxz_aSecretValue
            DETA_BASE_URL=https://database.deta.sh/v1/
            DETA_TIMEOUT=10
            DETA_LOG_LEVEL=DEBUG
            DETA_LOG_FORMAT=json
        """
        client: dict[str, Any] = {}
        if key := os.getenv(f"{prefix}PROJECT_KEY"):
            client["project_key"] = key
        if url := os.getenv(f"{prefix}BASE_URL"):
            client["base_url"] = url
        if timeout := os.getenv(f"{prefix}TIMEOUT"):
            try:
                client["timeout"] = float(timeout)
            except ValueError as exc:
                raise ValueError(f"{prefix}TIMEOUT must be a number, got {timeout!r}") from exc
        if user_agent := os.getenv(f"{prefix}USER_AGENT"):
            client["user_agent"] = user_agent

        log: dict[str, Any] = {}
        if level := os.getenv(f"{prefix}LOG_LEVEL"):
            log["level"] = level.upper()
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            log["format"] = log_format.lower()

        return cls(client=ClientConfig(**client), logging=LoggingConfig(**log))

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)

        Returns:
            Settings object with values from file
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            try:
                import yaml  # type: ignore[import-untyped]
            except ImportError as exc:
                raise ImportError("PyYAML is required for YAML config files: pip install pyyaml") from exc
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {suffix}")

        return cls._from_dict(data)

    @classmethod
    def default(cls) -> Settings:
        """Create default configuration."""
        return cls()

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        The dictionary is validated against the configuration schema first.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e.message}") from e

        return cls(
            client=ClientConfig(**data.get("client", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""
        return dataclasses.asdict(self)


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, creating it from the environment if needed."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None, **kwargs) -> Settings:
    """
    Configure global settings.

    Args:
        settings: Settings object to use globally
        **kwargs: Override specific sections ("client", "logging")

    Returns:
        The configured Settings object
    """
    global _global_settings

    if settings is not None:
        _global_settings = settings
    elif _global_settings is None:
        _global_settings = Settings.from_env()

    for key, value in kwargs.items():
        if not hasattr(_global_settings, key):
            raise ValueError(f"Unknown settings section: {key}")
        setattr(_global_settings, key, value)

    return _global_settings


def reset_settings() -> None:
    """Drop the global settings so the next access reloads them."""
    global _global_settings
    _global_settings = None


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "reset_settings", "load_env"]
