"""
Configuration system for deta-client.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable loading
- YAML/TOML file loading
- Sensible defaults with override capability
"""

from .base import DEFAULT_BASE_URL, LogFormat, LogLevel
from .client import ClientConfig
from .logging import LoggingConfig
from .settings import Settings, configure, get_settings, load_env, reset_settings

__all__ = [
    # Types
    "LogLevel",
    "LogFormat",
    "DEFAULT_BASE_URL",
    # Section configs
    "ClientConfig",
    "LoggingConfig",
    # Master config
    "Settings",
    # Global functions
    "get_settings",
    "configure",
    "reset_settings",
    "load_env",
]
