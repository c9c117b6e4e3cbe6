"""
WebDAV storage for a single vault file.

The server gives us GET, HEAD, PUT, MOVE and DELETE and nothing else.
No locks, no conditional writes. Saves still refuse to clobber a newer
revision: see webdav.py for how.
"""

from .classifier import (
    AbortedError,
    ErrorKind,
    HttpStatusError,
    MissingRevisionHeaderError,
    NetworkError,
    NotFoundError,
    RevisionConflictError,
    StorageError,
)
from .models import Credentials, LoadResult, SaveOutcome, SaveStatus, StatResult
from .transport import RequestsTransport, Transport, TransportResponse
from .webdav import WebDavStorage

__all__ = [
    "AbortedError",
    "Credentials",
    "ErrorKind",
    "HttpStatusError",
    "LoadResult",
    "MissingRevisionHeaderError",
    "NetworkError",
    "NotFoundError",
    "RequestsTransport",
    "RevisionConflictError",
    "SaveOutcome",
    "SaveStatus",
    "StatResult",
    "StorageError",
    "Transport",
    "TransportResponse",
    "WebDavStorage",
]
