"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds and writes HTTP/1.1 responses.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                  ← status line               │
    │    Content-Type: text/html\r\n          ┐                           │
    │    Content-Length: 1432\r\n             │                           │
    │    Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n  │ headers              │
    │    Server: staticserver/1.0\r\n         │                           │
    │    Connection: close\r\n                ┘                           │
    │    \r\n                                 ← always, even with no body │
    │    <!DOCTYPE html>...                   ← body (bytes or file)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
IN-MEMORY VS STREAMED BODIES
=============================================================================

Listings, redirects and errors are small and built in memory (`body`).
Files can be any size, so a file response carries an OPEN file object
(`body_file`) instead, and write_to() copies it to the connection in
buffer-sized chunks:

    header bytes ──► wfile
    while chunk := body_file.read(chunk_size):
        chunk     ──► wfile

The file is opened by the handler BEFORE anything is written, so "file
vanished" or "permission denied" still becomes a clean 403/500 instead of
a half-written 200.

=============================================================================
BUILDER PATTERN
=============================================================================

    response = (ResponseBuilder()
        .status(HTTPStatus.OK)
        .content_type("text/html; charset=utf-8")
        .body(html)
        .build())

    response = ResponseBuilder().redirect("/docs/").build()

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Optional, Union

from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be written to a connection.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns          write_to()               Connection
        HTTPResponse    ─────►   header bytes   ─────►    wfile
                                 + body / file chunks

    Exactly one of `body` / `body_file` is used. When `body_file` is set,
    `headers["Content-Length"]` must already hold its size.
    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    body_file: Optional[BinaryIO] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        """Declared body length in bytes."""
        if "Content-Length" in self.headers:
            return int(self.headers["Content-Length"])
        return len(self.body)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header.

        Returns self for method chaining:
            response.set_header("X-Custom", "value").set_header("X-Other", "val")
        """
        self.headers[name] = value
        return self

    def header_bytes(self, server_name: str = "staticserver/1.0") -> bytes:
        """
        Serialize the status line and header block.

        Adds Content-Length, Date, Server and Connection: close when the
        handler didn't set them. Always ends with the blank line:

            HTTP/1.1 404 Not Found\\r\\n
            Content-Length: 0\\r\\n
            ...\\r\\n
            \\r\\n
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        # One request per connection
        response_headers["Connection"] = "close"

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        # Location may carry the client's undecodable path bytes verbatim
        return "\r\n".join(lines).encode("utf-8", "surrogateescape") + b"\r\n"

    def to_bytes(self, server_name: str = "staticserver/1.0") -> bytes:
        """
        Serialize an in-memory response (headers + body) to bytes.

        Streamed file bodies are not included; use write_to() for those.
        """
        return self.header_bytes(server_name) + self.body

    def write_to(
        self,
        wfile: BinaryIO,
        server_name: str = "staticserver/1.0",
        chunk_size: int = 8192,
    ) -> int:
        """
        Write the full response to a binary writable stream.

        Args:
            wfile: Destination (socket.makefile("wb") or any BinaryIO).
            server_name: Value for the Server header.
            chunk_size: Read size when copying a file body.

        Returns:
            Number of body bytes written.

        Raises:
            OSError: Disk read or connection write failed. Also raised when
                the file ends before the declared Content-Length. Whatever was
                already written stays written; the caller drops the
                connection.
        """
        try:
            wfile.write(self.header_bytes(server_name))

            if self.body_file is None:
                wfile.write(self.body)
                written = len(self.body)
            else:
                written = self._copy_body(wfile, chunk_size)

            wfile.flush()
            return written
        finally:
            self.close()

    def _copy_body(self, wfile: BinaryIO, chunk_size: int) -> int:
        # Exactly Content-Length bytes: a file that grew since it was opened
        # is cut off, one that shrank aborts the response
        remaining = self.content_length
        while remaining > 0:
            chunk = self.body_file.read(min(chunk_size, remaining))
            if not chunk:
                raise OSError(
                    f"body file ended {remaining} bytes short of "
                    f"Content-Length {self.content_length}"
                )
            wfile.write(chunk)
            remaining -= len(chunk)
        return self.content_length

    def close(self):
        """Release the body file, if any. Safe to call more than once."""
        if self.body_file is not None:
            try:
                self.body_file.close()
            except OSError as e:
                logger.debug(f"Error closing response body file: {e}")
            self.body_file = None


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

    Each method returns `self`, enabling chaining; build() returns the
    finished HTTPResponse:

        builder.status(200).content_type("text/css").body(data).build()
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._body_file: Optional[BinaryIO] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set the Content-Type header."""
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set an in-memory body (strings are UTF-8 encoded)."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def html(self, html: Union[str, bytes]) -> "ResponseBuilder":
        """Set an HTML body with Content-Type text/html; charset=utf-8."""
        self._headers["Content-Type"] = "text/html; charset=utf-8"
        return self.body(html)

    def file(self, stream: BinaryIO, size: int, content_type: str) -> "ResponseBuilder":
        """
        Stream an already-open file as the body.

        Args:
            stream: Open binary file, positioned at the start.
            size: Byte length, sent as Content-Length.
            content_type: MIME type for the Content-Type header.
        """
        self._body_file = stream
        self._body = b""
        self._headers["Content-Type"] = content_type
        self._headers["Content-Length"] = str(size)
        return self

    def redirect(self, location: str) -> "ResponseBuilder":
        """
        Create a 301 Moved Permanently redirect.

        The only redirect this server issues is the directory
        trailing-slash one, which never changes, so it is always permanent.
        """
        self._status = HTTPStatus.MOVED_PERMANENTLY
        self._headers["Location"] = location
        return self

    def build(self) -> HTTPResponse:
        """Build and return the HTTPResponse object."""
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            body_file=self._body_file,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 19 Oct 2026 12:00:00 GMT

    HTTP dates are ALWAYS in GMT, never local time.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def moved_permanently(location: str) -> HTTPResponse:
    """301 Moved Permanently with a Location header and no body."""
    return ResponseBuilder().redirect(location).build()


def not_found() -> HTTPResponse:
    """404 Not Found with an empty body."""
    return error_response(HTTPStatus.NOT_FOUND)


def forbidden() -> HTTPResponse:
    """403 Forbidden with an empty body."""
    return error_response(HTTPStatus.FORBIDDEN)


def error_response(status: HTTPStatus) -> HTTPResponse:
    """
    An error response with an empty body.

    Used for 400/414/431 from the parser, 404 from the resolver and
    403/500/503 from the server.
    """
    return ResponseBuilder().status(HTTPStatus(status)).build()
