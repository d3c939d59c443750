"""
Item and batch result value types.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class Item(Generic[T]):
    """An item which is sent to or retrieved from a Deta Base.

    ``key`` is either supplied by the caller or generated by the store.
    """

    value: T
    key: str | None = None

    @classmethod
    def new(cls, value: T) -> Item[T]:
        """Make a new item with a value and no key."""
        return cls(value=value)

    @classmethod
    def with_key(cls, key: Any, value: T) -> Item[T]:
        """Make a new item with a key and a value.

        Any key with a string form is accepted (``Item.with_key(3, "x")``
        stores key ``"3"``).
        """
        return cls(value=value, key=str(key))


@dataclass
class BatchResult(Generic[T]):
    """Outcome of a batch write, split into processed and failed items."""

    processed: list[Item[T]] = field(default_factory=list)
    failed: list[Item[T]] = field(default_factory=list)

    def __iter__(self) -> Iterator[list[Item[T]]]:
        # Allows ``processed, failed = await base.put_many(items)``.
        yield self.processed
        yield self.failed

    @property
    def total(self) -> int:
        """Number of items the server reported on."""
        return len(self.processed) + len(self.failed)

    @property
    def ok(self) -> bool:
        """True when no item failed."""
        return not self.failed


__all__ = ["Item", "BatchResult"]
