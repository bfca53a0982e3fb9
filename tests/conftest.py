"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import ServerConfig, StaticFileServer


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /docs/guide.html?page=2 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"\r\n"
    )


@pytest.fixture
def docroot(tmp_path: Path, monkeypatch) -> Path:
    """
    A small document tree, made the working directory for the test.

        hello.txt            "Hello, world!\\n"
        style.css
        noext
        my file.txt
        <a&b>
        .hidden
        foo/a.txt            directory without an index
        site/index.html      directory with index.html
        legacy/index.htm     directory with index.htm only
        empty/
    """
    (tmp_path / "hello.txt").write_bytes(b"Hello, world!\n")
    (tmp_path / "style.css").write_bytes(b"body { color: red; }\n")
    (tmp_path / "noext").write_bytes(b"\x00\x01\x02")
    (tmp_path / "my file.txt").write_bytes(b"spaces\n")
    (tmp_path / "<a&b>").write_bytes(b"tricky\n")
    (tmp_path / ".hidden").write_bytes(b"dotfile\n")

    (tmp_path / "foo").mkdir()
    (tmp_path / "foo" / "a.txt").write_bytes(b"in foo\n")

    (tmp_path / "site").mkdir()
    (tmp_path / "site" / "index.html").write_bytes(b"<h1>Site</h1>\n")

    (tmp_path / "legacy").mkdir()
    (tmp_path / "legacy" / "index.htm").write_bytes(b"<h1>Legacy</h1>\n")

    (tmp_path / "empty").mkdir()

    # monkeypatch restores the original cwd after the test, even if the
    # server chdir()s again
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def config(docroot: Path) -> ServerConfig:
    """Test server configuration serving the docroot."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root=str(docroot),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class ServerThread:
    """Runs a StaticFileServer's accept loop in a background thread."""

    def __init__(self, server: StaticFileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.port

    def start(self):
        """Bind in this thread (so errors surface here), serve in another."""
        self.server.start()
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

    def stop(self):
        """Stop the server."""
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A live server on 127.0.0.1 serving the docroot."""
    server_thread = ServerThread(StaticFileServer(config))
    server_thread.start()

    yield server_thread

    server_thread.stop()


# =============================================================================
# HELPERS
# =============================================================================

def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes to the server and read until it closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(data)
        return read_until_eof(sock)


def read_until_eof(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def parse_response(raw: bytes) -> tuple:
    """
    Split a raw response into (status_code, headers, body).

    Header names keep their original case.
    """
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status_code = int(lines[0].split(" ", 2)[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return status_code, headers, body
