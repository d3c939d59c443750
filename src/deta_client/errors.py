"""
Error taxonomy for deta-client.

This module provides a closed exception hierarchy with:
- Error codes for programmatic handling
- Retryable vs non-retryable classification (the client itself never retries)
- Structured context for debugging
- Per-operation HTTP status mapping
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for the Deta client."""

    # Request/response errors (1xxx)
    REQUEST_FAILED = "ERR_1000"
    ITEM_NOT_FOUND = "ERR_1001"
    KEY_CONFLICT = "ERR_1002"
    KEY_NONEXISTENT = "ERR_1003"
    BAD_REQUEST = "ERR_1004"
    SERVER_ERROR = "ERR_1005"

    # Local validation errors (2xxx)
    COLLECTION_NOT_BOUND = "ERR_2000"
    BATCH_TOO_LARGE = "ERR_2001"

    # Marshalling errors (3xxx)
    REQUEST_MALFORMED = "ERR_3000"
    RESPONSE_MALFORMED = "ERR_3001"
    KEY_MISSING = "ERR_3002"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"
    CREDENTIAL_MISSING = "ERR_6001"
    CREDENTIAL_INVALID = "ERR_6002"
    TRANSPORT_INIT_FAILED = "ERR_6003"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    operation: str | None = None
    base: str | None = None
    key: str | None = None
    http_status: int | None = None
    request_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "base": self.base,
            "key": self.key,
            "http_status": self.http_status,
            "request_id": self.request_id,
            **self.extra,
        }


class DetaError(Exception):
    """
    Base exception for all Deta client errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        retryable: Whether the caller may reasonably retry the operation
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False
    default_message: str = "Deta client error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.request_id:
            parts.append(f"(request_id={self.context.request_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Request / Response Errors
# =============================================================================


class RequestFailedError(DetaError):
    """The request could not be sent or no response was received."""

    code = ErrorCode.REQUEST_FAILED
    retryable = True
    default_message = "Error while sending request"


class HTTPStatusError(DetaError):
    """Base class for errors derived from a non-2xx response."""

    http_status: int | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        http_status: int | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.http_status = http_status if http_status is not None else self.context.http_status
        if self.context.http_status is None:
            self.context.http_status = self.http_status


class ItemNotFoundError(HTTPStatusError):
    """The requested item does not exist in the base."""

    code = ErrorCode.ITEM_NOT_FOUND
    default_message = "Item not found"


class KeyConflictError(HTTPStatusError):
    """An item with the same key already exists."""

    code = ErrorCode.KEY_CONFLICT
    default_message = "Key already exists"


class KeyNonexistentError(HTTPStatusError):
    """The item to update does not exist."""

    code = ErrorCode.KEY_NONEXISTENT
    default_message = "Key doesn't exist"


class BadRequestError(HTTPStatusError):
    """
    The store rejected the request.

    Occurs when the request carries more than 25 items, the payload exceeds
    16 MB, a single item exceeds 400 KB or two items share the same key.
    """

    code = ErrorCode.BAD_REQUEST
    default_message = "Bad request"


class ServerError(HTTPStatusError):
    """The server didn't return the expected response."""

    code = ErrorCode.SERVER_ERROR
    retryable = True
    default_message = "Server error"


# =============================================================================
# Local Validation Errors
# =============================================================================


class CollectionNotBoundError(DetaError):
    """An item operation was attempted on a handle without a base name."""

    code = ErrorCode.COLLECTION_NOT_BOUND
    default_message = "Base name not present"


class BatchTooLargeError(DetaError):
    """More items than the store accepts in a single write request."""

    code = ErrorCode.BATCH_TOO_LARGE
    default_message = "Too many items in batch"

    def __init__(
        self,
        message: str | None = None,
        *,
        max_items: int | None = None,
        actual_items: int | None = None,
        **kwargs,
    ):
        if message is None and max_items is not None and actual_items is not None:
            message = f"Batch of {actual_items} items exceeds the limit of {max_items}"
        super().__init__(message, **kwargs)
        self.max_items = max_items
        self.actual_items = actual_items


# =============================================================================
# Marshalling Errors
# =============================================================================


class RequestMalformedError(DetaError):
    """The request body could not be serialized to JSON."""

    code = ErrorCode.REQUEST_MALFORMED
    default_message = "JSON serializing failed"


class ResponseMalformedError(DetaError):
    """The response body could not be parsed into the expected shape."""

    code = ErrorCode.RESPONSE_MALFORMED
    default_message = "JSON deserializing failed"


class KeyMissingError(ResponseMalformedError):
    """An object-shaped item came back without its "key" field."""

    code = ErrorCode.KEY_MISSING
    default_message = "Item has no key field"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(DetaError):
    """Base class for configuration errors."""

    code = ErrorCode.CONFIG_ERROR
    default_message = "Invalid configuration"


class CredentialMissingError(ConfigError):
    """No project key was supplied or found in the environment."""

    code = ErrorCode.CREDENTIAL_MISSING
    default_message = "Project key not found"

    def __init__(
        self,
        message: str | None = None,
        *,
        env_var: str | None = None,
        **kwargs,
    ):
        if message is None and env_var:
            message = f"Project key not found in env var {env_var}"
        super().__init__(message, **kwargs)
        self.env_var = env_var


class CredentialInvalidError(ConfigError):
    """The project key contains characters outside [A-Za-z0-9_.~-]."""

    code = ErrorCode.CREDENTIAL_INVALID
    default_message = "Invalid project key"


class TransportInitError(ConfigError):
    """The HTTP transport could not be initialized."""

    code = ErrorCode.TRANSPORT_INIT_FAILED
    default_message = "Error while initializing client"


# =============================================================================
# Error Mapping from HTTP Status Codes
# =============================================================================

_STATUS_MAP: dict[str, dict[int, type[HTTPStatusError]]] = {
    "insert": {400: BadRequestError, 409: KeyConflictError},
    "update": {400: BadRequestError, 404: KeyNonexistentError},
    "put": {400: BadRequestError},
    "put_many": {400: BadRequestError},
}

_FALLBACK: dict[str, type[HTTPStatusError]] = {
    "get": ItemNotFoundError,
    "insert": ServerError,
    "update": ServerError,
    "put": BadRequestError,
    "put_many": BadRequestError,
}


def error_from_status(
    operation: str,
    status: int,
    message: str | None = None,
    *,
    context: ErrorContext | None = None,
) -> HTTPStatusError:
    """
    Create the error for a non-2xx response to the given operation.

    Args:
        operation: Operation name ("get", "insert", "update", "put", "put_many")
        status: HTTP status code
        message: Optional error message (defaults to the error's own)
        context: Additional error context

    Returns:
        Appropriate HTTPStatusError subclass
    """
    ctx = context or ErrorContext(operation=operation)
    ctx.http_status = status
    error_class = _STATUS_MAP.get(operation, {}).get(status) or _FALLBACK.get(operation, ServerError)
    return error_class(message, http_status=status, context=ctx)


def is_retryable(error: Exception) -> bool:
    """
    Check if an error is worth retrying by the caller.

    Args:
        error: Exception to check

    Returns:
        True if the error is retryable
    """
    if isinstance(error, DetaError):
        return error.retryable

    retryable_types = (
        asyncio.TimeoutError,
        ConnectionError,
        TimeoutError,
    )
    return isinstance(error, retryable_types)


__all__ = [
    # Base
    "ErrorCode",
    "ErrorContext",
    "DetaError",
    # Request/response errors
    "RequestFailedError",
    "HTTPStatusError",
    "ItemNotFoundError",
    "KeyConflictError",
    "KeyNonexistentError",
    "BadRequestError",
    "ServerError",
    # Local validation errors
    "CollectionNotBoundError",
    "BatchTooLargeError",
    # Marshalling errors
    "RequestMalformedError",
    "ResponseMalformedError",
    "KeyMissingError",
    # Config errors
    "ConfigError",
    "CredentialMissingError",
    "CredentialInvalidError",
    "TransportInitError",
    # Utilities
    "error_from_status",
    "is_retryable",
]
