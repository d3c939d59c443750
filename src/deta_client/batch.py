"""
Batch write preparation and result reconciliation.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .codec import decode_item, encode
from .errors import BatchTooLargeError, ResponseMalformedError
from .item import BatchResult, Item

# Hard per-request cap enforced by the store.
MAX_BATCH_SIZE = 25


def validate(items: Sequence[Item[Any]], *, max_items: int = MAX_BATCH_SIZE) -> None:
    """
    Reject batches the store would refuse, before any network call.

    Raises:
        BatchTooLargeError: If there are more than ``max_items`` items.
    """
    if len(items) > max_items:
        raise BatchTooLargeError(max_items=max_items, actual_items=len(items))


def prepare(items: Sequence[Item[Any]]) -> dict[str, Any]:
    """
    Build the ``{"items": [...]}`` request body.

    Raises:
        RequestMalformedError: On the first item that fails to serialize.
    """
    return {"items": [encode(item) for item in items]}


def _partition(response: dict[str, Any], name: str, type_: Any) -> list[Item[Any]]:
    part = response.get(name)
    if part is None:
        # The service leaves out empty partitions.
        return []
    if not isinstance(part, dict) or not isinstance(part.get("items"), list):
        raise ResponseMalformedError(f'"{name}" partition has no items list')
    return [decode_item(raw, type_) for raw in part["items"]]


def reconcile(response: Any, type_: Any = Any) -> BatchResult[Any]:
    """
    Split a batch write response into processed and failed items.

    Args:
        response: Parsed response body.
        type_: Type to validate each item value as.

    Raises:
        ResponseMalformedError: If the response or a partition has the wrong shape.
    """
    if not isinstance(response, dict):
        raise ResponseMalformedError(
            f"Expected a JSON object, got {type(response).__name__}"
        )
    return BatchResult(
        processed=_partition(response, "processed", type_),
        failed=_partition(response, "failed", type_),
    )


__all__ = ["MAX_BATCH_SIZE", "validate", "prepare", "reconcile"]
