"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads an HTTP/1.1 request head off a connection, line by line, and turns it
into an immutable HTTPRequest.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │    GET /docs/index.html?v=2 HTTP/1.1\r\n                        │ │
    │  │    ─┬─ ──────────┬───────── ────┬───                           │ │
    │  │   Method       Path          Version                            │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    Host: localhost:8080\r\n                                     │ │
    │  │    User-Agent: curl/8.5.0\r\n                                   │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n                    ← parsing stops here                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

This server only answers GET, so it never reads a body: bytes after the
empty line are left on the connection untouched.

=============================================================================
PARSER STATE MACHINE
=============================================================================

        ┌──────────┐  request line   ┌──────────┐  empty line   ┌──────────┐
        │  STATUS  │ ──────────────► │ HEADERS  │ ────────────► │   DONE   │
        └──────────┘                 └──────────┘               └──────────┘
             │                         │    ▲
             │ EOF before any byte     │    │ "Name: value"
             ▼                         └────┘
        no request (None)

    STATUS:  one line, split on whitespace into exactly three tokens.
    HEADERS: split each line on the FIRST ":"; lowercase the name; strip
             leading whitespace from the value. A repeated header simply
             overwrites the earlier value.
    DONE:    stop reading.

=============================================================================
PARSE VS VALIDATE
=============================================================================

Parsing only checks SHAPE. Whether the request is one we serve is a separate
step, validate_request(), which insists on:

    version == "HTTP/1.1"
    method  == "GET"
    path    starts with "/"

Both steps raise HTTPParseError (validation uses the ProtocolValidationError
subclass). The connection handler catches it, answers with the carried
status code, and closes only THAT connection.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO
from types import MappingProxyType
from typing import BinaryIO, Mapping, Optional

from .status_codes import HTTPStatus


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the HTTP status code that should be sent back:

        400 Bad Request                     - Malformed request line/headers
        414 URI Too Long                    - Request line over the limit
        431 Request Header Fields Too Large - Header line or count over limit
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = HTTPStatus(status_code)


class ProtocolValidationError(HTTPParseError):
    """
    A well-formed request this server refuses to serve.

    Unsupported version, a method other than GET, or a path that is not
    absolute. Always answered with 400 Bad Request.
    """


class ParserState(Enum):
    """Where the parser is within the request head."""
    STATUS = "status"
    HEADERS = "headers"
    DONE = "done"


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request head.

    Frozen: once the parser hands it out nothing downstream can change it.
    Each connection gets its own instance; nothing is shared.

    Attributes:
        method:         "GET" (anything else fails validation)
        path:           Raw request target exactly as sent, query included
        version:        "HTTP/1.1"
        headers:        Read-only mapping, lowercase name → value
        client_address: (ip, port) of the peer, for logging
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Mapping[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        # frozen dataclass: bypass __setattr__ to wrap the dict read-only
        if not isinstance(self.headers, MappingProxyType):
            object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def host(self) -> str:
        """Get the Host header value."""
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        """Get the User-Agent header value."""
        return self.headers.get("user-agent", "")

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get a header value (case-insensitive lookup).

        Example:
            request.get_header("Content-Type")
            # Works because headers are stored lowercase
        """
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Reads one request head from a binary stream.

    The stream only needs readline(limit) - a socket.makefile("rb") in the
    server, an io.BytesIO in tests.

    ==========================================================================
    SECURITY LIMITS
    ==========================================================================

    readline() without a limit would happily buffer a gigabyte-long "line".
    Every read is capped:

        max_line_size   Longest request line / header line (bytes)
        max_headers     Most header lines accepted in one request

    ==========================================================================
    """

    # Request-line decoding: UTF-8, with undecodable bytes kept as surrogates
    # so they reach the filesystem as the exact bytes the client sent.
    ENCODING = "utf-8"
    ERRORS = "surrogateescape"

    def __init__(self, max_line_size: int = 8192, max_headers: int = 100):
        """
        Initialize the request parser.

        Args:
            max_line_size: Maximum length of any single line, in bytes.
            max_headers: Maximum number of header lines.
        """
        self.max_line_size = max_line_size
        self.max_headers = max_headers

    def parse(
        self,
        stream: BinaryIO,
        client_address: tuple[str, int] = ("", 0),
    ) -> Optional[HTTPRequest]:
        """
        Parse the request head waiting on `stream`.

        Args:
            stream: Binary readable with readline().
            client_address: Peer (ip, port) tuple for logging.

        Returns:
            The parsed HTTPRequest, or None if the stream hit EOF before a
            single byte arrived (the client connected and went away).

        Raises:
            HTTPParseError: Malformed, truncated or oversized request head.
        """
        state = ParserState.STATUS
        method = path = version = ""
        headers: dict[str, str] = {}
        header_count = 0

        while state is not ParserState.DONE:
            raw = self._read_line(stream, state)

            if state is ParserState.STATUS:
                if not raw:
                    return None
                method, path, version = self._parse_request_line(raw)
                state = ParserState.HEADERS
                continue

            # ─────────────────────────────────────────────────────────────
            # HEADERS
            # ─────────────────────────────────────────────────────────────
            if not raw:
                raise HTTPParseError("Connection closed before end of headers")

            if raw in (b"\r\n", b"\n"):
                state = ParserState.DONE
                continue

            header_count += 1
            if header_count > self.max_headers:
                raise HTTPParseError(
                    f"Too many headers (limit {self.max_headers})",
                    status_code=HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE,
                )

            parsed = self._parse_header_line(raw)
            if parsed is not None:
                name, value = parsed
                headers[name] = value  # last one wins

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            client_address=client_address,
        )

    def _read_line(self, stream: BinaryIO, state: ParserState) -> bytes:
        """Read one line, enforcing max_line_size."""
        line = stream.readline(self.max_line_size + 1)
        if len(line) > self.max_line_size:
            if state is ParserState.STATUS:
                raise HTTPParseError(
                    "Request line too long",
                    status_code=HTTPStatus.URI_TOO_LONG,
                )
            raise HTTPParseError(
                "Header line too long",
                status_code=HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE,
            )
        return line

    def _parse_request_line(self, raw: bytes) -> tuple[str, str, str]:
        """
        Split "METHOD SP PATH SP VERSION" into its three tokens.

        Raises:
            HTTPParseError: If the line doesn't split into exactly three.
        """
        line = raw.decode(self.ENCODING, self.ERRORS)
        tokens = line.split()
        if len(tokens) != 3:
            raise HTTPParseError(f"Invalid request line: {line.strip()!r}")
        method, path, version = tokens
        return method, path, version

    def _parse_header_line(self, raw: bytes) -> Optional[tuple[str, str]]:
        """
        Split "Name: value" on the first colon.

        Returns None for a line with no colon (skipped, lenient parsing).
        """
        line = raw.decode(self.ENCODING, self.ERRORS).rstrip("\r\n")
        name, sep, value = line.partition(":")
        if not sep:
            return None
        return name.strip().lower(), value.lstrip()


def validate_request(request: HTTPRequest) -> HTTPRequest:
    """
    Check that `request` is one this server answers.

    Returns the request unchanged so calls can be chained:

        request = validate_request(parser.parse(stream))

    Raises:
        ProtocolValidationError: Wrong version, wrong method, or a path
            that does not start with "/".
    """
    if request.version != "HTTP/1.1":
        raise ProtocolValidationError(f"Unsupported HTTP version: {request.version}")

    if request.method != "GET":
        raise ProtocolValidationError(f"Unsupported method: {request.method}")

    if not request.path.startswith("/"):
        raise ProtocolValidationError(f"Request path is not absolute: {request.path}")

    return request


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
) -> Optional[HTTPRequest]:
    """
    Parse a request head held in memory.

    Wraps `data` in a BytesIO and runs a default RequestParser over it.
    Handy in tests and anywhere the bytes are already buffered.
    """
    return RequestParser().parse(BytesIO(data), client_address)
