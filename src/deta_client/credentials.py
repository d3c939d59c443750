"""
Project key parsing and validation.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

from .errors import CredentialInvalidError, CredentialMissingError
from .logging import redact_api_key

DEFAULT_ENV_VAR = "DETA_PROJECT_KEY"

_VALID_KEY = re.compile(r"[A-Za-z0-9_.~-]+")


@dataclass(frozen=True)
class ProjectKey:
    """A validated Deta project key.

    The project id used for routing is the part of the key before its first
    ``_``.
    """

    secret: str = field(repr=False)
    project_id: str

    @classmethod
    def parse(cls, token: str) -> ProjectKey:
        """
        Validate a raw project key.

        Raises:
            CredentialInvalidError: If the key is empty or contains characters
                other than ASCII alphanumerics and ``_ . - ~``.
        """
        if not isinstance(token, str) or not _VALID_KEY.fullmatch(token):
            raise CredentialInvalidError()
        project_id = token.split("_", 1)[0]
        if not project_id:
            raise CredentialInvalidError("Project key has an empty project id")
        return cls(secret=token, project_id=project_id)

    @classmethod
    def from_env(cls, env_var: str = DEFAULT_ENV_VAR) -> ProjectKey:
        """
        Read and validate the project key from the environment.

        Raises:
            CredentialMissingError: If the variable is unset or empty.
            CredentialInvalidError: If the key is malformed.
        """
        token = os.getenv(env_var)
        if not token:
            raise CredentialMissingError(env_var=env_var)
        return cls.parse(token)

    @property
    def redacted(self) -> str:
        return redact_api_key(self.secret)

    def __str__(self) -> str:
        return self.redacted


__all__ = ["DEFAULT_ENV_VAR", "ProjectKey"]
