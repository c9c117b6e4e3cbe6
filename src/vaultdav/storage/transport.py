"""
Transport -- issue exactly one HTTP request, nothing more.

No status interpretation happens here. A 404 or a 500 is still a
successful transport call; only failing to talk to the server at all
(or being cancelled) raises.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Mapping, Optional

import requests
from requests.structures import CaseInsensitiveDict

logger = logging.getLogger("vaultdav.storage.transport")

DEFAULT_TIMEOUT = 30


class TransportError(Exception):
    """Raised when the request never produced an HTTP response."""


class TransportAborted(TransportError):
    """Raised when the request was cancelled by the caller."""


@dataclass
class TransportResponse:
    """Raw HTTP response: status, headers, body."""

    status: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: bytes = b""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, CaseInsensitiveDict):
            self.headers = CaseInsensitiveDict(self.headers)


class Transport(ABC):
    """Abstract HTTP transport."""

    @abstractmethod
    def issue(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> TransportResponse:
        """Send one request.

        Args:
            method: HTTP verb (GET, HEAD, PUT, MOVE, DELETE).
            url: Absolute URL.
            headers: Request headers.
            body: Optional binary payload.

        Returns:
            The server response, whatever its status.

        Raises:
            TransportError: If no response was received.
            TransportAborted: If the call was cancelled.
        """


class RequestsTransport(Transport):
    """Transport on top of a requests session.

    Args:
        timeout: Per-request timeout in seconds. ``None`` waits forever.
        session: Optional pre-configured session (TLS, proxies).
    """

    def __init__(
        self,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()
        self._lock = threading.Lock()
        self._in_flight = False
        self._aborted = False

    def abort(self) -> None:
        """Cancel the in-flight request.

        Safe to call from another thread. Does nothing when no request
        is in flight. A request whose response already arrived is not
        cancelled: the server has carried it out, so the response is
        returned.
        """
        with self._lock:
            if not self._in_flight:
                return
            self._aborted = True
        self.session.close()

    def issue(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> TransportResponse:
        with self._lock:
            self._in_flight = True
            self._aborted = False

        try:
            resp = self.session.request(
                method,
                url,
                headers=dict(headers),
                data=body,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.RequestException as exc:
            if self._aborted:
                raise TransportAborted(f"{method} {url}: aborted") from exc
            raise TransportError(f"{method} {url}: {exc}") from exc
        finally:
            with self._lock:
                self._in_flight = False

        return TransportResponse(
            status=resp.status_code,
            headers=CaseInsensitiveDict(resp.headers),
            body=resp.content or b"",
        )
