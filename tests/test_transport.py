"""Tests for the requests-based transport.

All network calls are mocked -- no server required.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from vaultdav.storage.transport import RequestsTransport, TransportAborted, TransportError


def _response(status: int = 200, headers=None, content: bytes = b"") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.content = content
    return resp


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


class TestRequestsTransport:
    """Tests for RequestsTransport."""

    def test_issue_passes_everything_through(self, session):
        """Method, URL, headers, body and timeout reach the session."""
        session.request.return_value = _response(201)
        transport = RequestsTransport(timeout=5, session=session)

        transport.issue("PUT", "https://h/x", {"A": "b"}, b"body")

        session.request.assert_called_once_with(
            "PUT",
            "https://h/x",
            headers={"A": "b"},
            data=b"body",
            timeout=5,
            allow_redirects=False,
        )

    def test_response_fields(self, session):
        """Status, headers and body come back unchanged."""
        session.request.return_value = _response(
            200, {"Last-Modified": "rev-1"}, b"payload"
        )
        resp = RequestsTransport(session=session).issue("GET", "https://h/x", {})

        assert resp.status == 200
        assert resp.headers["last-modified"] == "rev-1"
        assert resp.body == b"payload"

    def test_error_status_is_not_an_exception(self, session):
        """A 500 is a response, not a transport error."""
        session.request.return_value = _response(500)
        resp = RequestsTransport(session=session).issue("HEAD", "https://h/x", {})
        assert resp.status == 500

    def test_connection_error(self, session):
        """requests failures become TransportError."""
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransportError) as info:
            RequestsTransport(session=session).issue("GET", "https://h/x", {})
        assert not isinstance(info.value, TransportAborted)

    def test_timeout(self, session):
        """Timeouts are transport errors too."""
        session.request.side_effect = requests.Timeout("slow")
        with pytest.raises(TransportError):
            RequestsTransport(session=session).issue("GET", "https://h/x", {})

    def test_abort_during_request(self, session):
        """An abort while the request is in flight raises TransportAborted."""
        transport = RequestsTransport(session=session)

        def in_flight(*args, **kwargs):
            transport.abort()
            raise requests.ConnectionError("connection closed")

        session.request.side_effect = in_flight
        with pytest.raises(TransportAborted):
            transport.issue("GET", "https://h/x", {})
        session.close.assert_called_once()

    def test_abort_after_response(self, session):
        """A response that already arrived is returned despite an abort."""
        transport = RequestsTransport(session=session)

        def in_flight(*args, **kwargs):
            transport.abort()
            return _response(201)

        session.request.side_effect = in_flight
        resp = transport.issue("MOVE", "https://h/.x.1", {})
        assert resp.status == 201

    def test_abort_while_idle_is_ignored(self, session):
        """Aborting with nothing in flight does not touch later requests."""
        session.request.return_value = _response(200)
        transport = RequestsTransport(session=session)
        transport.abort()

        resp = transport.issue("GET", "https://h/x", {})

        assert resp.status == 200
        session.close.assert_not_called()

    def test_abort_is_one_shot(self, session):
        """After an aborted request the next one goes out normally."""
        transport = RequestsTransport(session=session)

        def in_flight(*args, **kwargs):
            transport.abort()
            raise requests.ConnectionError("connection closed")

        session.request.side_effect = in_flight
        with pytest.raises(TransportAborted):
            transport.issue("HEAD", "https://h/x", {})

        session.request.side_effect = None
        session.request.return_value = _response(204)
        resp = transport.issue("DELETE", "https://h/.x.1", {})
        assert resp.status == 204
