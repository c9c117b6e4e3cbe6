"""
Storage data models -- requests, revisions, and outcomes.

A revision is whatever the server sends back as ``Last-Modified``.
We never parse it and never order it. Two revisions are either the
same string or they are not.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class HttpMethod(str, Enum):
    """Verbs the storage protocol is allowed to use."""

    GET = "GET"
    HEAD = "HEAD"
    PUT = "PUT"
    MOVE = "MOVE"
    DELETE = "DELETE"


class Credentials(BaseModel):
    """Plaintext login for the WebDAV server. Never written to disk."""

    user: Optional[str] = None
    password: Optional[str] = None


class RequestConfig(BaseModel):
    """Everything needed to issue one request.

    ``nostat`` marks verbs whose response may legitimately omit the
    revision header (PUT and MOVE are re-checked with a HEAD afterwards).
    """

    op: str
    method: HttpMethod
    path: str
    credentials: Credentials = Field(default_factory=Credentials)
    headers: dict[str, str] = Field(default_factory=dict)
    body: Optional[bytes] = None
    nostat: bool = False


class StatResult(BaseModel):
    """Metadata of a remote object."""

    revision: Optional[str] = None


class LoadResult(BaseModel):
    """Body and metadata of a remote object."""

    body: bytes
    revision: Optional[str] = None


class SaveStatus(str, Enum):
    """Terminal state of a save."""

    SAVED = "saved"
    CONFLICT = "conflict"
    FAILED = "failed"


class SaveOutcome(BaseModel):
    """Result of a save as reported to the user.

    ``revision`` is the new revision when saved and the revision we
    observed on the server when the save hit a conflict.
    """

    status: SaveStatus
    revision: Optional[str] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None

    @property
    def saved(self) -> bool:
        return self.status == SaveStatus.SAVED
