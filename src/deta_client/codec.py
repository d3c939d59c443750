"""
Canonical envelope codec.

Converts between application items and the JSON object shape the store
expects on the wire. The store always receives an object: values that do not
serialize to an object are wrapped as ``{"value": value}`` so that ``"key"``
can be merged into them.

Two fetch paths coexist over the same wire shape:

- ``decode_single`` returns the bare value. A scalar item comes back from the
  store in the compact ``{"key": ..., "value": ...}`` form, an object item
  comes back as the object itself plus a ``"key"`` field. The two are told
  apart by field count: exactly two fields means compact.
- ``decode_item`` keeps the key alongside the value.

NOTE: the two-field heuristic misreads an object value with exactly one
field of its own (plus its key) as a compact scalar. This is a property of
the wire protocol and is preserved as-is.
"""

from __future__ import annotations

from typing import Any

from .errors import KeyMissingError, ResponseMalformedError
from .item import Item
from .serialization import from_json_data, to_json_data

KEY_FIELD = "key"
VALUE_FIELD = "value"


def _require_object(wire: Any) -> dict[str, Any]:
    if not isinstance(wire, dict):
        raise ResponseMalformedError(
            f"Expected a JSON object, got {type(wire).__name__}"
        )
    return wire


def encode(item: Item[Any]) -> dict[str, Any]:
    """
    Serialize an item into its wire envelope.

    Args:
        item: The item to encode.

    Returns:
        A new JSON object. If ``item.key`` is set it overrides any ``"key"``
        field of the value itself.

    Raises:
        RequestMalformedError: If the value cannot be serialized.
    """
    data = to_json_data(item.value)
    if isinstance(data, dict):
        envelope = dict(data)
    else:
        envelope = {VALUE_FIELD: data}

    if item.key is not None:
        envelope[KEY_FIELD] = item.key

    return envelope


def decode_single(wire: Any, type_: Any = Any) -> Any:
    """
    Decode a fetched item into its bare value.

    Args:
        wire: Parsed response body.
        type_: Type to validate the value as (``Any`` skips validation).

    Raises:
        KeyMissingError: Object-shaped item without a ``"key"`` field.
        ResponseMalformedError: Wrong shape or type mismatch.
    """
    obj = _require_object(wire)

    if len(obj) == 2:
        if VALUE_FIELD not in obj:
            raise ResponseMalformedError("Compact item has no value field")
        return from_json_data(obj[VALUE_FIELD], type_)

    if KEY_FIELD not in obj:
        raise KeyMissingError()
    remainder = {k: v for k, v in obj.items() if k != KEY_FIELD}
    return from_json_data(remainder, type_)


def decode_item(wire: Any, type_: Any = Any) -> Item[Any]:
    """
    Decode a wire envelope into an ``Item``, keeping its key.

    A remainder of exactly ``{"value": ...}`` is read as a wrapped scalar,
    anything else is the value object itself.

    Raises:
        ResponseMalformedError: Wrong shape, non-string key or type mismatch.
    """
    obj = _require_object(wire)

    key = obj.get(KEY_FIELD)
    if key is not None and not isinstance(key, str):
        raise ResponseMalformedError(f"Item key must be a string, got {type(key).__name__}")

    remainder = {k: v for k, v in obj.items() if k != KEY_FIELD}
    if remainder.keys() == {VALUE_FIELD}:
        raw = remainder[VALUE_FIELD]
    else:
        raw = remainder

    return Item(value=from_json_data(raw, type_), key=key)


__all__ = ["KEY_FIELD", "VALUE_FIELD", "encode", "decode_single", "decode_item"]
