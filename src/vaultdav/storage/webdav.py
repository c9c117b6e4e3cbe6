"""
WebDAV storage -- load, stat, and the optimistic save protocol.

WebDAV gives us no compare-and-swap, so a save approximates one:

    1. HEAD path            revision still the one we loaded?
    2. PUT  .name.<ms>      write the body where nobody reads it
    3. HEAD .name.<ms>      did the write land?
    4. HEAD path            still our revision? (someone may have saved)
    5. MOVE .name.<ms>      atomic promote, Overwrite: T
    6. HEAD path            the new revision

Each step runs only after the previous one succeeded. The temp object
is deleted when step 3 or 4 fails; a failed PUT or MOVE leaves it behind
but never touches the real path.

Known limitation: a writer that completes a full save between step 4
and step 5 is overwritten. Closing that window needs a conditional write
on the server, which this verb set does not have.
"""

from __future__ import annotations

import base64
import logging
import re
import time
from typing import Callable, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from .classifier import (
    NotFoundError,
    RevisionConflictError,
    StorageError,
    classify_response,
    classify_transport_error,
)
from .models import (
    Credentials,
    HttpMethod,
    LoadResult,
    RequestConfig,
    StatResult,
)
from .transport import RequestsTransport, Transport, TransportError

logger = logging.getLogger("vaultdav.storage.webdav")

_LAST_SEGMENT = re.compile(r"[^/]+$")


def temp_path_for(path: str, stamp_ms: int) -> str:
    """Hidden, per-attempt sibling of ``path``.

    ``/dav/db.kdbx`` at 1700000000000 becomes ``/dav/.db.kdbx.1700000000000``.
    Query and fragment are left alone.
    """
    parts = urlsplit(path)
    hidden = _LAST_SEGMENT.sub(lambda m: "." + m.group(0), parts.path, count=1)
    return urlunsplit(parts._replace(path=f"{hidden}.{stamp_ms}"))


def completed_op_name(op: str) -> str:
    """``Load`` -> ``Loaded``, ``Save:stat`` -> ``Save:stated``."""
    return op + ("d" if op.endswith("e") else "ed")


def basic_auth(credentials: Credentials) -> Optional[str]:
    """Authorization header value, or None when no user is set."""
    if not credentials.user:
        return None
    token = f"{credentials.user}:{credentials.password or ''}".encode("utf-8")
    return "Basic " + base64.b64encode(token).decode("ascii")


class WebDavStorage:
    """Single-file storage on a WebDAV server.

    Args:
        transport: HTTP transport. Defaults to a requests-based one.
        base_url: Location relative paths are resolved against, the way
            a browser resolves them against the current page.
        clock: Returns seconds since the epoch. Used for temp names.
    """

    name = "webdav"

    def __init__(
        self,
        transport: Optional[Transport] = None,
        base_url: Optional[str] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.transport = transport or RequestsTransport()
        self.base_url = base_url
        self._clock = clock or time.time

    def load(
        self, path: str, credentials: Optional[Credentials] = None
    ) -> LoadResult:
        """Download the object body and its revision."""
        config = RequestConfig(
            op="Load",
            method=HttpMethod.GET,
            path=path,
            credentials=credentials or Credentials(),
        )
        revision, body = self._request(config)
        return LoadResult(body=body, revision=revision)

    def stat(
        self, path: str, credentials: Optional[Credentials] = None
    ) -> StatResult:
        """Fetch the object's current revision without the body."""
        config = RequestConfig(
            op="Stat",
            method=HttpMethod.HEAD,
            path=path,
            credentials=credentials or Credentials(),
        )
        revision, _ = self._request(config)
        return StatResult(revision=revision)

    def save(
        self,
        path: str,
        body: bytes,
        credentials: Optional[Credentials] = None,
        expected_revision: Optional[str] = None,
    ) -> StatResult:
        """Write ``body`` to ``path`` unless someone else changed it.

        Args:
            path: Target object.
            body: New content.
            credentials: Login for the server.
            expected_revision: Revision the caller last saw. ``None``
                creates or overwrites unconditionally.

        Returns:
            The revision of the object after the write.

        Raises:
            RevisionConflictError: The object no longer has
                ``expected_revision``. Nothing visible was changed.
            StorageError: Any other classified failure.
        """
        credentials = credentials or Credentials()
        tmp_path = temp_path_for(path, int(self._clock() * 1000))

        self._check_revision(path, credentials, expected_revision)

        self._request(RequestConfig(
            op="Save:put",
            method=HttpMethod.PUT,
            path=tmp_path,
            credentials=credentials,
            body=body,
            nostat=True,
        ))

        try:
            self._request(RequestConfig(
                op="Save:stat",
                method=HttpMethod.HEAD,
                path=tmp_path,
                credentials=credentials,
            ))
            self._check_revision(path, credentials, expected_revision)
        except StorageError:
            self._discard(tmp_path, credentials)
            raise

        self._request(RequestConfig(
            op="Save:move",
            method=HttpMethod.MOVE,
            path=tmp_path,
            credentials=credentials,
            headers={"Destination": self.resolve(path), "Overwrite": "T"},
            nostat=True,
        ))

        revision, _ = self._request(RequestConfig(
            op="Save:stat",
            method=HttpMethod.HEAD,
            path=path,
            credentials=credentials,
        ))
        return StatResult(revision=revision)

    def resolve(self, path: str) -> str:
        """Absolute URL for ``path``."""
        if "://" in path:
            return path
        if not self.base_url:
            raise ValueError(f"Relative path {path!r} needs a base_url")
        return urljoin(self.base_url, path)

    def _check_revision(
        self,
        path: str,
        credentials: Credentials,
        expected_revision: Optional[str],
    ) -> None:
        """Raise unless ``path`` is still at ``expected_revision``."""
        config = RequestConfig(
            op="Save:stat",
            method=HttpMethod.HEAD,
            path=path,
            credentials=credentials,
        )
        try:
            revision, _ = self._request(config)
        except NotFoundError:
            if expected_revision is None:
                return
            raise

        if expected_revision is not None and revision != expected_revision:
            logger.info(
                "Save error %s rev conflict %s %s",
                path, revision, expected_revision,
            )
            raise RevisionConflictError(
                f"{path}: revision changed",
                path,
                observed_revision=revision,
            )

    def _discard(self, tmp_path: str, credentials: Credentials) -> None:
        """Best-effort delete of the temp object. Never raises."""
        try:
            self._request(RequestConfig(
                op="Save:delete",
                method=HttpMethod.DELETE,
                path=tmp_path,
                credentials=credentials,
                nostat=True,
            ))
        except StorageError as exc:
            logger.warning("Could not delete %s: %s", tmp_path, exc)

    def _request(self, config: RequestConfig) -> tuple[Optional[str], bytes]:
        """Issue one request and classify it.

        Returns:
            Tuple of (revision, body).
        """
        logger.debug("%s %s", config.op, config.path)
        url = self.resolve(config.path)

        headers: dict[str, str] = {}
        auth = basic_auth(config.credentials)
        if auth:
            headers["Authorization"] = auth
        headers.update(config.headers)
        if config.method in (HttpMethod.GET, HttpMethod.HEAD):
            headers["Cache-Control"] = "no-cache"
        if config.body is not None:
            headers["Content-Type"] = "application/octet-stream"

        started = time.monotonic()
        try:
            response = self.transport.issue(
                config.method.value, url, headers, config.body
            )
        except TransportError as exc:
            elapsed = (time.monotonic() - started) * 1000
            raise classify_transport_error(config, exc, elapsed) from exc

        elapsed = (time.monotonic() - started) * 1000
        revision = classify_response(config, response, elapsed)
        logger.debug(
            "%s %s %s %.0fms",
            completed_op_name(config.op), config.path, revision, elapsed,
        )
        return revision, response.body
