"""
HTTP transport used by the client.

The client only needs ``send(method, url, headers, json_body)`` returning a
status and a body. Connection reuse, TLS and timeouts are the transport's
business; ``AiohttpTransport`` is the default, tests inject their own.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import aiohttp

from .errors import RequestFailedError, TransportInitError
from .serialization import fast_json_dumps, fast_json_loads

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Status and raw body of a completed HTTP exchange."""

    status: int
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """
        Parse the body as JSON.

        Raises:
            ResponseMalformedError: If the body is empty or not valid JSON.
        """
        return fast_json_loads(self.content)

    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@runtime_checkable
class Transport(Protocol):
    """Protocol for the HTTP collaborator."""

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        json_body: Any | None = None,
    ) -> TransportResponse:
        """
        Perform one request/response exchange.

        Raises:
            RequestFailedError: If no response was received.
            RequestMalformedError: If ``json_body`` cannot be serialized.
        """
        ...

    async def close(self) -> None:
        ...


class AiohttpTransport:
    """Transport backed by a shared ``aiohttp.ClientSession``.

    The session is opened on first use. A session passed in by the caller is
    used as-is and never closed here.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session
        async with self._lock:
            if self._session is None or self._session.closed:
                try:
                    self._session = aiohttp.ClientSession(
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    )
                except (RuntimeError, ValueError, OSError) as exc:
                    raise TransportInitError(cause=exc) from exc
                self._owns_session = True
        return self._session

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        json_body: Any | None = None,
    ) -> TransportResponse:
        data = fast_json_dumps(json_body) if json_body is not None else None
        session = await self._get_session()
        try:
            async with session.request(method, url, headers=headers, data=data) as resp:
                content = await resp.read()
                return TransportResponse(status=resp.status, content=content)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.debug("%s %s failed: %s", method, url, exc)
            raise RequestFailedError(f"Error while sending request: {exc}", cause=exc) from exc

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None if self._owns_session else self._session

    async def __aenter__(self) -> AiohttpTransport:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


__all__ = ["TransportResponse", "Transport", "AiohttpTransport"]
