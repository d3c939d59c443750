"""
JSON helpers for request and response bodies.

Application values are converted to JSON-compatible data through pydantic,
so dataclasses, pydantic models, enums and datetimes serialize the same way
everywhere in the client. Bytes on the wire go through orjson.
"""

from __future__ import annotations

import math
from functools import lru_cache
from typing import Any

import orjson
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from .errors import RequestMalformedError, ResponseMalformedError


def _has_non_finite(data: Any) -> bool:
    if isinstance(data, float):
        return not math.isfinite(data)
    if isinstance(data, dict):
        return any(_has_non_finite(v) for v in data.values())
    if isinstance(data, list):
        return any(_has_non_finite(v) for v in data)
    return False


def to_json_data(value: Any) -> Any:
    """
    Convert an application value into plain JSON data (dict/list/str/...).

    Raises:
        RequestMalformedError: If the value has no JSON representation,
            including NaN and infinite floats anywhere inside it.
    """
    try:
        data = to_jsonable_python(value)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise RequestMalformedError(
            f"Value of type {type(value).__name__} is not JSON serializable",
            cause=exc,
        ) from exc
    if _has_non_finite(data):
        raise RequestMalformedError("NaN and infinite floats have no JSON representation")
    return data


@lru_cache(maxsize=256)
def _adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


def type_adapter(type_: Any) -> TypeAdapter[Any]:
    """Return a (cached where possible) pydantic adapter for ``type_``."""
    try:
        return _adapter(type_)
    except TypeError:
        # Unhashable type expressions can't be cached.
        return TypeAdapter(type_)


def from_json_data(data: Any, type_: Any = Any) -> Any:
    """
    Validate JSON data as ``type_``.

    Raises:
        ResponseMalformedError: If the data does not match ``type_``.
    """
    if type_ is Any:
        return data
    try:
        return type_adapter(type_).validate_python(data)
    except PydanticValidationError as exc:
        raise ResponseMalformedError(
            f"Response does not match {getattr(type_, '__name__', type_)!s}",
            cause=exc,
        ) from exc


def fast_json_dumps(obj: Any) -> bytes:
    """
    Serialize JSON data to bytes (non-canonical, for API calls).

    Raises:
        RequestMalformedError: If orjson rejects the payload.
    """
    try:
        return orjson.dumps(obj)
    except TypeError as exc:
        raise RequestMalformedError("Request body is not JSON serializable", cause=exc) from exc


def fast_json_loads(data: bytes | str) -> Any:
    """
    Parse a JSON document.

    Raises:
        ResponseMalformedError: If the document is not valid JSON.
    """
    try:
        return orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        raise ResponseMalformedError("Response body is not valid JSON", cause=exc) from exc


__all__ = [
    "to_json_data",
    "from_json_data",
    "type_adapter",
    "fast_json_dumps",
    "fast_json_loads",
]
