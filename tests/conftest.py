"""
Shared test fixtures for deta-client tests.

This module provides:
- A stub transport that records requests and replays queued responses
- Settings and client fixtures bound to a fake project key
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import orjson
import pytest

from deta_client import Deta
from deta_client.config import ClientConfig, LoggingConfig, Settings
from deta_client.transport import TransportResponse

PROJECT_KEY = "a0abcyxz_aSecretValue"
PROJECT_ID = "a0abcyxz"
BASE_URL = f"https://database.deta.sh/v1/{PROJECT_ID}"


# =============================================================================
# Stub Transport
# =============================================================================


@dataclass
class RecordedCall:
    method: str
    url: str
    headers: dict[str, str]
    json_body: Any


class StubTransport:
    """In-memory transport for tests."""

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._responses: list[TransportResponse | Exception] = []
        self.closed = False

    def queue(self, status: int = 200, body: Any = None, *, raw: bytes | None = None) -> StubTransport:
        """Queue a response; ``body`` is JSON-encoded, ``raw`` is sent verbatim."""
        if raw is None:
            raw = orjson.dumps(body) if body is not None else b""
        self._responses.append(TransportResponse(status=status, content=raw))
        return self

    def fail_next(self, error: Exception) -> StubTransport:
        self._responses.append(error)
        return self

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        json_body: Any | None = None,
    ) -> TransportResponse:
        self.calls.append(RecordedCall(method, url, headers, json_body))
        if not self._responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True

    @property
    def last(self) -> RecordedCall:
        return self.calls[-1]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        client=ClientConfig(project_key=PROJECT_KEY),
        logging=LoggingConfig(level="DEBUG"),
    )


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def deta(transport: StubTransport, settings: Settings) -> Deta:
    return Deta(PROJECT_KEY, transport=transport, settings=settings)


@pytest.fixture
def base(deta: Deta) -> Deta:
    return deta.base("test")
