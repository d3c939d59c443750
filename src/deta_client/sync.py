"""Thin sync wrappers for the async-first client.

Use with caution - these are primarily for scripting and testing contexts
where async is not available.

- Uses asyncio.run() when no event loop is active
- Raises RuntimeError if called inside an existing event loop
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine, Iterable
from typing import Any, TypeVar

from .client import Deta
from .item import BatchResult, Item
from .update import Update

T = TypeVar("T")


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion from synchronous code.

    Raises:
        RuntimeError: If called inside an existing async event loop.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    coro.close()
    raise RuntimeError(
        "run_sync() cannot be called inside an async context. "
        "Await the Deta coroutine directly instead."
    )


class SyncDeta:
    """Blocking facade over ``Deta``.

    Each call runs in its own event loop, so the wrapped client should use a
    transport that does not keep a session across loops (the default
    ``AiohttpTransport`` is closed after every call for that reason).
    """

    def __init__(self, client: Deta) -> None:
        self._client = client

    @classmethod
    def from_env(cls, **kwargs: Any) -> SyncDeta:
        return cls(Deta.from_env(**kwargs))

    @property
    def client(self) -> Deta:
        return self._client

    @property
    def base_name(self) -> str | None:
        return self._client.base_name

    def base(self, base_name: str) -> SyncDeta:
        return SyncDeta(self._client.base(base_name))

    def _call(self, fn: Callable[..., Coroutine[Any, Any, T]], *args: Any) -> T:
        async def runner() -> T:
            try:
                return await fn(*args)
            finally:
                await self._client.close()

        return run_sync(runner())

    def get(self, key: Any, type_: Any = Any) -> Any:
        return self._call(self._client.get, key, type_)

    def get_item(self, key: Any, type_: Any = Any) -> Item[Any]:
        return self._call(self._client.get_item, key, type_)

    def delete(self, key: Any) -> None:
        self._call(self._client.delete, key)

    def put(self, item: Item[Any]) -> str:
        return self._call(self._client.put, item)

    def put_many(self, items: Iterable[Item[Any]], type_: Any = Any) -> BatchResult[Any]:
        return self._call(self._client.put_many, items, type_)

    def insert(self, item: Item[Any]) -> str:
        return self._call(self._client.insert, item)

    def update(self, key: Any, update: Update) -> None:
        self._call(self._client.update, key, update)


__all__ = ["run_sync", "SyncDeta"]
