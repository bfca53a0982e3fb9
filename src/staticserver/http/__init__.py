"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The HTTP/1.1 side of the server: bytes off the wire into an HTTPRequest,
an HTTPResponse back onto the wire, and the small pure helpers in between.

=============================================================================
MODULE COMPONENTS
=============================================================================

    request.py       Line-oriented parser state machine + validation
    response.py      HTTPResponse, ResponseBuilder, streamed file bodies
    status_codes.py  The status codes this server emits
    mime_types.py    Extension → Content-Type table
    paths.py         normalize(): collapse "." / ".." / "//" safely
    urlcodec.py      Percent-decoding of paths, encoding of listing links

=============================================================================
HTTP MESSAGE FORMAT (RFC 7230)
=============================================================================

    REQUEST:                          RESPONSE:
    ─────────                         ──────────
    GET /path HTTP/1.1\\r\\n            HTTP/1.1 200 OK\\r\\n
    Header: Value\\r\\n                 Header: Value\\r\\n
    \\r\\n                              \\r\\n
                                      [body]

Key points:
- Lines end with CRLF (\\r\\n)
- Headers and body separated by an empty line
- Header names are case-insensitive ("Host" = "host")

=============================================================================
"""

from .mime_types import get_mime_type
from .paths import normalize
from .request import (
    HTTPParseError,
    HTTPRequest,
    ProtocolValidationError,
    RequestParser,
    parse_request,
    validate_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    forbidden,
    format_http_date,
    moved_permanently,
    not_found,
)
from .status_codes import HTTPStatus
from .urlcodec import decode, encode

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "ProtocolValidationError",
    "parse_request",
    "validate_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "moved_permanently",
    "not_found",
    "forbidden",
    "error_response",

    # Status codes
    "HTTPStatus",

    # Paths and URLs
    "normalize",
    "decode",
    "encode",
    "get_mime_type",
]
