"""
Client connection configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .base import DEFAULT_BASE_URL


@dataclass
class ClientConfig:
    """Configuration for reaching the Deta Base API."""

    project_key: str | None = field(default_factory=lambda: os.getenv("DETA_PROJECT_KEY"), repr=False)
    base_url: str = DEFAULT_BASE_URL

    # Request settings
    timeout: float = 30.0
    user_agent: str | None = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must be a valid HTTP(S) URL")
        if not self.base_url.endswith("/"):
            self.base_url += "/"


__all__ = ["ClientConfig"]
