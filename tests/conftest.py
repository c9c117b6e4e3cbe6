"""Shared test fixtures for vaultdav."""

from __future__ import annotations

import itertools
from pathlib import Path
from typing import Callable, Mapping, Optional
from urllib.parse import urlsplit

import pytest

from vaultdav.storage.transport import Transport, TransportResponse
from vaultdav.storage.webdav import WebDavStorage

BASE_URL = "https://dav.example.com/dav/index.html"
VAULT_URL = "https://dav.example.com/dav/db.kdbx"


class FakeDavServer(Transport):
    """In-memory WebDAV server.

    Every write (PUT, MOVE) assigns a fresh Last-Modified value. PUT and
    MOVE responses carry no Last-Modified, like many real servers.

    ``on(method, fragment, action)`` registers a one-shot hook that runs
    before the first matching request. The hook may raise, return a
    response to send instead, or return None to continue normally.
    """

    def __init__(self):
        self.files: dict[str, tuple[bytes, str]] = {}
        self.calls: list[tuple[str, str, dict]] = []
        self.send_revision = True
        self._hooks: list[tuple[str, str, Callable]] = []
        self._ticks = itertools.count(1)

    def next_revision(self) -> str:
        n = next(self._ticks)
        return f"Tue, 14 Nov 2023 22:{n // 60:02d}:{n % 60:02d} GMT"

    def put_file(self, url: str, body: bytes) -> str:
        revision = self.next_revision()
        self.files[url] = (body, revision)
        return revision

    def revision_of(self, url: str) -> Optional[str]:
        entry = self.files.get(url)
        return entry[1] if entry else None

    def body_of(self, url: str) -> Optional[bytes]:
        entry = self.files.get(url)
        return entry[0] if entry else None

    def temp_files(self) -> list[str]:
        return [u for u in self.files if urlsplit(u).path.rsplit("/", 1)[-1].startswith(".")]

    def on(self, method: str, fragment: str, action: Callable) -> None:
        self._hooks.append((method, fragment, action))

    def methods(self) -> list[str]:
        return [m for m, _, _ in self.calls]

    def issue(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> TransportResponse:
        self.calls.append((method, url, dict(headers)))
        for i, (m, fragment, action) in enumerate(self._hooks):
            if m == method and fragment in url:
                del self._hooks[i]
                result = action(url)
                if result is not None:
                    return result
                break
        handler = getattr(self, "_" + method.lower())
        return handler(url, headers, body)

    def _meta(self, revision: str) -> dict:
        return {"Last-Modified": revision} if self.send_revision else {}

    def _get(self, url, headers, body):
        if url not in self.files:
            return TransportResponse(status=404)
        data, revision = self.files[url]
        return TransportResponse(status=200, headers=self._meta(revision), body=data)

    def _head(self, url, headers, body):
        if url not in self.files:
            return TransportResponse(status=404)
        return TransportResponse(status=200, headers=self._meta(self.files[url][1]))

    def _put(self, url, headers, body):
        created = url not in self.files
        self.put_file(url, body or b"")
        return TransportResponse(status=201 if created else 204)

    def _move(self, url, headers, body):
        if url not in self.files:
            return TransportResponse(status=404)
        dest = headers["Destination"]
        if dest in self.files and headers.get("Overwrite") == "F":
            return TransportResponse(status=412)
        data, _ = self.files.pop(url)
        self.put_file(dest, data)
        return TransportResponse(status=201)

    def _delete(self, url, headers, body):
        if self.files.pop(url, None) is None:
            return TransportResponse(status=404)
        return TransportResponse(status=204)


def make_clock(start: float = 1700000000.0) -> Callable[[], float]:
    """Clock that advances one second per call, so temp names differ."""
    ticks = itertools.count()
    return lambda: start + next(ticks)


@pytest.fixture
def server() -> FakeDavServer:
    """An empty fake WebDAV server."""
    return FakeDavServer()


@pytest.fixture
def storage(server: FakeDavServer) -> WebDavStorage:
    """Storage talking to the fake server."""
    return WebDavStorage(server, base_url=BASE_URL, clock=make_clock())


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    """Provide a temporary vaultdav home directory."""
    home = tmp_path / ".vaultdav"
    home.mkdir()
    return home
