"""
Top-level package for the Deta Base client.

Environment variables are loaded from the nearest `.env` so that
`DETA_PROJECT_KEY` is picked up without extra setup.
"""
from dotenv import find_dotenv, load_dotenv

# Keep side effect so the project key is loaded on import.
_ = load_dotenv(find_dotenv(usecwd=True), override=False)

from .batch import MAX_BATCH_SIZE
from .client import Deta
from .codec import decode_item, decode_single, encode
from .config import Settings, configure, get_settings
from .credentials import ProjectKey
from .errors import (
    BadRequestError,
    BatchTooLargeError,
    CollectionNotBoundError,
    CredentialInvalidError,
    CredentialMissingError,
    DetaError,
    ItemNotFoundError,
    KeyConflictError,
    KeyMissingError,
    KeyNonexistentError,
    RequestFailedError,
    RequestMalformedError,
    ResponseMalformedError,
    ServerError,
    TransportInitError,
)
from .item import BatchResult, Item
from .logging import configure_logging
from .sync import SyncDeta
from .transport import AiohttpTransport, Transport, TransportResponse
from .update import Update

__all__ = [
    "Deta",
    "SyncDeta",
    "Item",
    "BatchResult",
    "Update",
    "ProjectKey",
    "MAX_BATCH_SIZE",
    "encode",
    "decode_single",
    "decode_item",
    "Transport",
    "TransportResponse",
    "AiohttpTransport",
    "Settings",
    "get_settings",
    "configure",
    "configure_logging",
    # Errors
    "DetaError",
    "CollectionNotBoundError",
    "RequestFailedError",
    "ItemNotFoundError",
    "KeyConflictError",
    "KeyNonexistentError",
    "BadRequestError",
    "ServerError",
    "BatchTooLargeError",
    "RequestMalformedError",
    "ResponseMalformedError",
    "KeyMissingError",
    "CredentialMissingError",
    "CredentialInvalidError",
    "TransportInitError",
]
