"""
Deta Base client.

A ``Deta`` handle carries the project key, the transport and optionally the
name of the base it operates on. ``base()`` derives a new handle bound to a
base; the handle it was derived from is untouched, and both share the same
transport. Every operation is a single request/response exchange: nothing is
retried, and every failure is raised to the caller as a ``DetaError``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from . import batch
from .codec import decode_item, decode_single, encode
from .config import Settings, get_settings
from .credentials import DEFAULT_ENV_VAR, ProjectKey
from .errors import (
    BadRequestError,
    CollectionNotBoundError,
    CredentialMissingError,
    DetaError,
    ErrorContext,
    ResponseMalformedError,
    ServerError,
    error_from_status,
)
from .item import BatchResult, Item
from .logging import (
    RequestLog,
    ResponseLog,
    StructuredLogger,
    generate_request_id,
    timed,
    truncate_for_log,
)
from .transport import AiohttpTransport, Transport, TransportResponse
from .update import Update


@dataclass(frozen=True)
class _Connection:
    """Immutable state shared by a handle and every handle derived from it."""

    project_key: ProjectKey
    url: str
    headers: dict[str, str]
    transport: Transport
    owns_transport: bool
    logger: StructuredLogger
    log_requests: bool
    log_responses: bool


class Deta:
    """
    Async client for Deta Base.

    Example:
        ```python
        async with Deta.from_env() as deta:
            base = deta.base("main")
            await base.put(Item.with_key("get_id", 60))
            value = await base.get("get_id", int)
        ```
    """

    def __init__(
        self,
        project_key: str | ProjectKey | None = None,
        *,
        transport: Transport | None = None,
        settings: Settings | None = None,
        base_name: str | None = None,
    ) -> None:
        """
        Create a client.

        Args:
            project_key: The project key. Defaults to the configured one.
            transport: HTTP transport. Defaults to an ``AiohttpTransport``.
            settings: Settings to use instead of the global ones.
            base_name: Optional base to bind to right away.

        Raises:
            CredentialMissingError: No project key supplied or configured.
            CredentialInvalidError: The project key is malformed.
        """
        settings = settings or get_settings()

        if project_key is None:
            project_key = settings.client.project_key
        if not project_key:
            raise CredentialMissingError(env_var=DEFAULT_ENV_VAR)
        if not isinstance(project_key, ProjectKey):
            project_key = ProjectKey.parse(project_key)

        headers = {
            "X-API-Key": project_key.secret,
            "Content-Type": "application/json",
        }
        if settings.client.user_agent:
            headers["User-Agent"] = settings.client.user_agent

        owns_transport = transport is None
        if transport is None:
            transport = AiohttpTransport(timeout=settings.client.timeout)

        logger = StructuredLogger(
            "deta_client",
            level=settings.logging.level,
            json_output=settings.logging.format == "json",
            redact_keys=settings.logging.redact_api_keys,
        ).bind(project_id=project_key.project_id)

        self._conn = _Connection(
            project_key=project_key,
            url=f"{settings.client.base_url}{project_key.project_id}",
            headers=headers,
            transport=transport,
            owns_transport=owns_transport,
            logger=logger,
            log_requests=settings.logging.log_requests,
            log_responses=settings.logging.log_responses,
        )
        self._base_name = base_name

    @classmethod
    def from_env(
        cls,
        env_var: str = DEFAULT_ENV_VAR,
        *,
        transport: Transport | None = None,
        settings: Settings | None = None,
    ) -> Deta:
        """
        Create a client from the project key in ``env_var``.

        Raises:
            CredentialMissingError: The variable is unset or empty.
            CredentialInvalidError: The project key is malformed.
        """
        return cls(ProjectKey.from_env(env_var), transport=transport, settings=settings)

    @classmethod
    def _derived(cls, conn: _Connection, base_name: str | None) -> Deta:
        handle = object.__new__(cls)
        handle._conn = conn
        handle._base_name = base_name
        return handle

    def base(self, base_name: str) -> Deta:
        """
        Return a new handle bound to ``base_name``.

        The handle this is called on keeps its own binding and stays usable.
        """
        return self._derived(self._conn, str(base_name))

    @property
    def base_name(self) -> str | None:
        return self._base_name

    @property
    def project_id(self) -> str:
        return self._conn.project_key.project_id

    @property
    def url(self) -> str:
        return self._conn.url

    async def close(self) -> None:
        """Close the transport if this client created it."""
        if self._conn.owns_transport:
            await self._conn.transport.close()

    async def __aenter__(self) -> Deta:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"Deta(project_id={self.project_id!r}, base_name={self._base_name!r})"

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _items_url(self, key: Any | None = None) -> str:
        if self._base_name is None:
            raise CollectionNotBoundError()
        url = f"{self._conn.url}/{quote(self._base_name, safe='')}/items"
        if key is not None:
            url += f"/{quote(str(key), safe='')}"
        return url

    @contextmanager
    def _annotate(self, operation: str, key: Any | None = None) -> Iterator[None]:
        try:
            yield
        except DetaError as exc:
            ctx = exc.context
            ctx.operation = ctx.operation or operation
            ctx.base = ctx.base or self._base_name
            if key is not None and ctx.key is None:
                ctx.key = str(key)
            raise

    async def _send(
        self,
        operation: str,
        method: str,
        url: str,
        body: Any | None = None,
        *,
        item_count: int | None = None,
        log_response: bool = True,
    ) -> tuple[str, TransportResponse]:
        conn = self._conn
        request_id = generate_request_id()

        if conn.log_requests:
            conn.logger.log_request(
                RequestLog(
                    request_id=request_id,
                    method=method,
                    url=url,
                    operation=operation,
                    base=self._base_name,
                    item_count=item_count,
                )
            )

        with timed() as timer:
            try:
                response = await conn.transport.send(method, url, dict(conn.headers), body)
            except DetaError as exc:
                exc.context.request_id = exc.context.request_id or request_id
                if conn.log_responses:
                    conn.logger.log_response(
                        ResponseLog(
                            request_id=request_id,
                            operation=operation,
                            success=False,
                            error=exc.message,
                            duration_ms=timer.elapsed_ms,
                        )
                    )
                raise

        if log_response and conn.log_responses:
            conn.logger.log_response(
                ResponseLog(
                    request_id=request_id,
                    operation=operation,
                    success=response.ok,
                    status_code=response.status,
                    duration_ms=timer.elapsed_ms,
                )
            )
        return request_id, response

    def _raise_for_status(
        self,
        operation: str,
        request_id: str,
        response: TransportResponse,
        key: Any | None = None,
    ) -> None:
        if response.ok:
            return
        context = ErrorContext(
            operation=operation,
            base=self._base_name,
            key=None if key is None else str(key),
            request_id=request_id,
            extra={"body": truncate_for_log(response.text())} if response.content else {},
        )
        raise error_from_status(operation, response.status, context=context)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def get(self, key: Any, type_: Any = Any) -> Any:
        """
        Get the value of a stored item.

        Args:
            key: The key of the item to retrieve.
            type_: Type to validate the value as (e.g. ``int`` or a model class).

        Raises:
            CollectionNotBoundError, RequestFailedError, ItemNotFoundError,
            ResponseMalformedError
        """
        with self._annotate("get", key):
            url = self._items_url(key)
            request_id, response = await self._send("get", "GET", url)
            self._raise_for_status("get", request_id, response, key)
            return decode_single(response.json(), type_)

    async def get_item(self, key: Any, type_: Any = Any) -> Item[Any]:
        """
        Get a stored item together with its key.

        Raises:
            CollectionNotBoundError, RequestFailedError, ItemNotFoundError,
            ResponseMalformedError
        """
        with self._annotate("get", key):
            url = self._items_url(key)
            request_id, response = await self._send("get", "GET", url)
            self._raise_for_status("get", request_id, response, key)
            return decode_item(response.json(), type_)

    async def delete(self, key: Any) -> None:
        """
        Delete a stored item.

        Deleting a key that does not exist is not an error.

        Raises:
            CollectionNotBoundError, RequestFailedError
        """
        with self._annotate("delete", key):
            url = self._items_url(key)
            await self._send("delete", "DELETE", url)

    async def put(self, item: Item[Any]) -> str:
        """
        Store an item, overwriting any item with the same key.

        Returns:
            The key of the stored item (generated by the store if unset).

        Raises:
            CollectionNotBoundError, RequestMalformedError, RequestFailedError,
            BadRequestError, ResponseMalformedError
        """
        with self._annotate("put", item.key):
            url = self._items_url()
            body = batch.prepare([item])
            request_id, response = await self._send("put", "PUT", url, body, item_count=1)
            self._raise_for_status("put", request_id, response, item.key)

            result = batch.reconcile(response.json())
            if result.processed:
                key = result.processed[0].key
                if key is None:
                    raise ResponseMalformedError("Processed item has no key")
                return key
            if result.failed:
                raise BadRequestError("Item was rejected by the store")
            raise ResponseMalformedError("Response has no processed items")

    async def put_many(self, items: Iterable[Item[Any]], type_: Any = Any) -> BatchResult[Any]:
        """
        Store up to 25 items in a single request, overwriting existing keys.

        Args:
            items: Items to store.
            type_: Type to validate the returned item values as.

        Returns:
            ``BatchResult`` with the processed and failed items; unpacks as
            ``processed, failed``.

        Raises:
            BatchTooLargeError, CollectionNotBoundError, RequestMalformedError,
            RequestFailedError, BadRequestError, ResponseMalformedError
        """
        items = list(items)
        with self._annotate("put_many"):
            batch.validate(items)
            url = self._items_url()
            if not items:
                return BatchResult()
            body = batch.prepare(items)
            with timed() as timer:
                request_id, response = await self._send(
                    "put_many", "PUT", url, body, item_count=len(items), log_response=False
                )

            result: BatchResult[Any] | None = None
            try:
                self._raise_for_status("put_many", request_id, response)
                result = batch.reconcile(response.json(), type_)
            finally:
                if self._conn.log_responses:
                    self._conn.logger.log_response(
                        ResponseLog(
                            request_id=request_id,
                            operation="put_many",
                            success=result is not None,
                            status_code=response.status,
                            duration_ms=timer.elapsed_ms,
                            processed=None if result is None else len(result.processed),
                            failed=None if result is None else len(result.failed),
                        )
                    )
            return result

    async def insert(self, item: Item[Any]) -> str:
        """
        Create an item only if no item with the same key exists.

        Returns:
            The key of the new item.

        Raises:
            CollectionNotBoundError, RequestMalformedError, RequestFailedError,
            KeyConflictError, BadRequestError, ServerError, ResponseMalformedError
        """
        with self._annotate("insert", item.key):
            url = self._items_url()
            body = {"item": encode(item)}
            request_id, response = await self._send("insert", "POST", url, body, item_count=1)
            self._raise_for_status("insert", request_id, response, item.key)

            data = response.json()
            key = data.get("key") if isinstance(data, dict) else None
            if not isinstance(key, str):
                raise ServerError("Response has no key", http_status=response.status)
            return key

    async def update(self, key: Any, update: Update) -> None:
        """
        Update an item only if an item with ``key`` exists.

        Raises:
            CollectionNotBoundError, RequestMalformedError, RequestFailedError,
            KeyNonexistentError, BadRequestError, ServerError
        """
        with self._annotate("update", key):
            url = self._items_url(key)
            request_id, response = await self._send("update", "PATCH", url, update.build())
            self._raise_for_status("update", request_id, response, key)


__all__ = ["Deta"]
