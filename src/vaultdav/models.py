"""
Pydantic models for vaultdav configuration and state.

config.yaml holds what the user chose (connections, server location).
state.json holds what we learned (last known revisions, counters).
"""

from __future__ import annotations

import socket
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FieldType(str, Enum):
    """Input widget for an open-config field."""

    TEXT = "text"
    PASSWORD = "password"


class OpenField(BaseModel):
    """One input a user fills in to open a vault over WebDAV."""

    id: str
    title: str
    desc: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    placeholder: Optional[str] = None


OPEN_CONFIG_FIELDS: list[OpenField] = [
    OpenField(
        id="path",
        title="URL",
        desc="Full URL of the vault file on the WebDAV server",
        required=True,
    ),
    OpenField(
        id="user",
        title="User",
        desc="WebDAV user name",
        placeholder="leave empty for anonymous access",
    ),
    OpenField(
        id="password",
        title="Password",
        desc="WebDAV password",
        type=FieldType.PASSWORD,
        placeholder="leave empty for anonymous access",
    ),
]


def needs_open_config() -> bool:
    """WebDAV always asks for connection details before opening."""
    return True


class ConnectionProfile(BaseModel):
    """A saved WebDAV connection.

    The password is stored only as ``encpass``, obfuscated with
    ``file_id``.
    """

    path: str
    user: Optional[str] = None
    encpass: Optional[str] = None
    file_id: str


class DavConfig(BaseModel):
    """Complete vaultdav configuration."""

    base_url: Optional[str] = None
    timeout: Optional[float] = 30.0
    connections: dict[str, ConnectionProfile] = Field(default_factory=dict)


class ConnectionState(BaseModel):
    """What we last saw of one connection's remote file."""

    last_revision: Optional[str] = None
    last_push: Optional[datetime] = None
    last_pull: Optional[datetime] = None
    push_count: int = 0
    pull_count: int = 0
    conflict_count: int = 0
    last_error: Optional[str] = None


class SyncState(BaseModel):
    """Current state persisted to disk."""

    connections: dict[str, ConnectionState] = Field(default_factory=dict)


class AuditEntry(BaseModel):
    """A single structured audit log entry (one JSON line)."""

    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    event_type: str
    detail: str
    host: str = Field(default_factory=socket.gethostname)
    connection: Optional[str] = None
    metadata: Optional[dict] = None
