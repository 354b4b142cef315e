"""Shared fixtures for chatgate tests."""

import json
import socket
import sys
import threading
from pathlib import Path
from typing import Any, Iterable, List, Optional
from unittest.mock import Mock

import pytest
import requests

# Ensure project root is importable when running tests from a checkout
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


def pytest_configure(config):
    config.addinivalue_line("markers", "live: calls a real provider; needs credentials")


class FakeResponse:
    """Stand-in for ``requests.Response`` with canned body or lines."""

    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        lines: Optional[Iterable] = None,
        text: Optional[str] = None,
        reason: str = "OK",
    ):
        self.status_code = status_code
        self.reason = reason
        self._json = json_data
        self._lines: List = list(lines or [])
        if text is None:
            text = json.dumps(json_data) if json_data is not None else ""
        self.text = text
        self.closed = False

    def json(self):
        if self._json is None:
            return json.loads(self.text)
        return self._json

    def iter_lines(self):
        for line in self._lines:
            yield line.encode("utf-8") if isinstance(line, str) else line

    def close(self):
        self.closed = True


class BlockingStreamResponse(FakeResponse):
    """Streams its first lines, then blocks until closed, like a stalled socket."""

    def __init__(self, lines: Iterable, timeout: float = 5.0):
        super().__init__(lines=lines)
        self._released = threading.Event()
        self._timeout = timeout

    def iter_lines(self):
        yield from super().iter_lines()
        self._released.wait(self._timeout)
        raise requests.exceptions.ConnectionError("Connection closed")

    def close(self):
        super().close()
        self._released.set()


class StalledServer:
    """
    Local TCP server that reads one request, sends ``preamble`` and then stalls.

    With an empty preamble the client waits for response headers forever.
    """

    def __init__(self, preamble: bytes = b""):
        self.preamble = preamble
        self.request_received = threading.Event()
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(1)
        self._conns: List[socket.socket] = []
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    @property
    def url(self) -> str:
        host, port = self._listener.getsockname()
        return f"http://{host}:{port}"

    def _serve(self):
        try:
            conn, _ = self._listener.accept()
        except OSError:
            return
        self._conns.append(conn)
        data = b""
        while b"\r\n\r\n" not in data:
            chunk = conn.recv(65536)
            if not chunk:
                return
            data += chunk
        if self.preamble:
            conn.sendall(self.preamble)
        self.request_received.set()

    def close(self):
        for conn in self._conns:
            conn.close()
        self._listener.close()


def sse(*events) -> List[str]:
    """Render SSE frames; each event is a data dict/str or an (event, data) pair."""
    lines = []
    for event in events:
        name = None
        if isinstance(event, tuple):
            name, event = event
        if name:
            lines.append(f"event: {name}")
        data = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {data}")
        lines.append("")
    return lines


@pytest.fixture
def make_response():
    return FakeResponse


@pytest.fixture
def blocking_response():
    return BlockingStreamResponse


@pytest.fixture
def sse_lines():
    return sse


@pytest.fixture
def mock_session():
    """Attach a Mock session returning ``response`` to a client."""

    def attach(client, response):
        session = Mock()
        if isinstance(response, Exception):
            session.request.side_effect = response
        else:
            session.request.return_value = response
        client.session = session
        return session

    return attach


@pytest.fixture
def stalled_server(monkeypatch):
    """Factory for StalledServer; proxies from the environment are ignored."""
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    servers = []

    def start(preamble: bytes = b"") -> StalledServer:
        server = StalledServer(preamble)
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.close()
