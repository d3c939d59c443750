"""
Base types for configuration.
"""

from __future__ import annotations

from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]

DEFAULT_BASE_URL = "https://database.deta.sh/v1/"


__all__ = ["LogLevel", "LogFormat", "DEFAULT_BASE_URL"]
