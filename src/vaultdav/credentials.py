"""
Credential obfuscation for saved connection settings.

The WebDAV password is XOR-ed with the vault file's uuid and base64
encoded before it is written to config.yaml. This keeps the password
out of plain sight in a settings dump or a screen share. It is NOT
encryption: anyone holding the config and the uuid gets the password
back in one line.
"""

from __future__ import annotations

import base64
from typing import Optional

from pydantic import BaseModel

from .storage.models import Credentials


class StoredCredentials(BaseModel):
    """Persisted form of a login: user plus obfuscated password."""

    user: Optional[str] = None
    encpass: Optional[str] = None


def _xor(data: bytes, key: bytes) -> bytes:
    return bytes(b ^ key[i % len(key)] for i, b in enumerate(data))


def obfuscate(password: str, file_id: str) -> str:
    """Mask ``password`` with ``file_id``.

    Args:
        password: Plaintext password.
        file_id: Stable per-file identifier (the vault uuid).

    Returns:
        Printable base64 string.

    Raises:
        ValueError: If ``file_id`` is empty.
    """
    if not file_id:
        raise ValueError("file_id must not be empty")
    masked = _xor(password.encode("utf-8"), file_id.encode("utf-8"))
    return base64.b64encode(masked).decode("ascii")


def deobfuscate(encpass: str, file_id: str) -> str:
    """Exact inverse of :func:`obfuscate`."""
    if not file_id:
        raise ValueError("file_id must not be empty")
    masked = base64.b64decode(encpass.encode("ascii"))
    return _xor(masked, file_id.encode("utf-8")).decode("utf-8")


def file_opts_to_store_opts(
    opts: Credentials, file_id: str, encpass: Optional[str] = None
) -> StoredCredentials:
    """Convert a live login into its persisted form.

    Without a plaintext password the previously stored ``encpass`` is
    kept as-is.
    """
    result = StoredCredentials(user=opts.user, encpass=encpass)
    if opts.password:
        result.encpass = obfuscate(opts.password, file_id)
    return result


def store_opts_to_file_opts(
    stored: StoredCredentials, file_id: str
) -> Credentials:
    """Convert a persisted login back into plaintext credentials."""
    result = Credentials(user=stored.user)
    if stored.encpass:
        result.password = deobfuscate(stored.encpass, file_id)
    return result
