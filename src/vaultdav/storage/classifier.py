"""
Request classifier -- turn a transport outcome into a storage result.

Every response ends up as exactly one of: a revision (success) or a
StorageError subclass. The set of errors is closed; callers can rely on
``isinstance(err, RevisionConflictError)`` to start a reload-and-merge.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from .models import RequestConfig
from .transport import TransportAborted, TransportError, TransportResponse

logger = logging.getLogger("vaultdav.storage.classifier")

OK_STATUSES = frozenset({200, 201, 204})
REVISION_HEADER = "Last-Modified"


class ErrorKind(str, Enum):
    """Closed taxonomy of storage failures."""

    NOT_FOUND = "not_found"
    REVISION_CONFLICT = "revision_conflict"
    MISSING_REVISION_HEADER = "missing_revision_header"
    HTTP_STATUS = "http_status"
    NETWORK_ERROR = "network_error"
    ABORTED = "aborted"


class StorageError(Exception):
    """Base class for every classified storage failure."""

    kind: ErrorKind

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class NotFoundError(StorageError):
    """Server answered 404."""

    kind = ErrorKind.NOT_FOUND


class RevisionConflictError(StorageError):
    """Someone else changed the object (412, or a revision mismatch)."""

    kind = ErrorKind.REVISION_CONFLICT

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        observed_revision: Optional[str] = None,
    ):
        super().__init__(message, path)
        self.observed_revision = observed_revision


class MissingRevisionHeaderError(StorageError):
    """Successful response without a Last-Modified header."""

    kind = ErrorKind.MISSING_REVISION_HEADER


class HttpStatusError(StorageError):
    """Any other non-success HTTP status."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(self, message: str, path: Optional[str] = None, status: int = 0):
        super().__init__(message, path)
        self.status = status


class NetworkError(StorageError):
    """No HTTP response was received."""

    kind = ErrorKind.NETWORK_ERROR


class AbortedError(StorageError):
    """The request was cancelled before it completed."""

    kind = ErrorKind.ABORTED


def classify_response(
    config: RequestConfig,
    response: TransportResponse,
    elapsed_ms: float = 0.0,
) -> Optional[str]:
    """Classify a completed HTTP response.

    Args:
        config: The request that produced the response.
        response: Raw transport response.
        elapsed_ms: Round-trip time, for diagnostics only.

    Returns:
        The revision from the Last-Modified header. ``None`` only when
        the request was issued with ``nostat`` and the header is absent.

    Raises:
        NotFoundError: On 404.
        RevisionConflictError: On 412.
        HttpStatusError: On any other non-success status.
        MissingRevisionHeaderError: On success without a revision when
            ``nostat`` is not set.
    """
    status = response.status
    if status not in OK_STATUSES:
        logger.debug(
            "%s error %s %d %.0fms", config.op, config.path, status, elapsed_ms
        )
        if status == 404:
            raise NotFoundError(f"{config.path}: not found", config.path)
        if status == 412:
            raise RevisionConflictError(
                f"{config.path}: precondition failed", config.path
            )
        raise HttpStatusError(
            f"HTTP status {status}", config.path, status=status
        )

    revision = response.headers.get(REVISION_HEADER) or None
    if revision is None and not config.nostat:
        logger.debug(
            "%s error %s no headers %.0fms", config.op, config.path, elapsed_ms
        )
        raise MissingRevisionHeaderError(
            f"No {REVISION_HEADER} header", config.path
        )
    return revision


def classify_transport_error(
    config: RequestConfig,
    exc: TransportError,
    elapsed_ms: float = 0.0,
) -> StorageError:
    """Map a transport failure to its storage error (returned, not raised)."""
    if isinstance(exc, TransportAborted):
        logger.debug(
            "%s error %s aborted %.0fms", config.op, config.path, elapsed_ms
        )
        return AbortedError("aborted", config.path)
    logger.debug("%s error %s %.0fms", config.op, config.path, elapsed_ms)
    return NetworkError(f"network error: {exc}", config.path)
