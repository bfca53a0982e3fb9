"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One line per answered request on the "staticserver.access" logger, kept
apart from the module loggers so it can be routed on its own:

    logging.getLogger("staticserver.access").addHandler(file_handler)

=============================================================================
FORMATS
=============================================================================

    text (default), Common Log style:

        127.0.0.1 - - [19/Oct/2026:12:00:00 +0000] "GET /docs/" 200 1432 0.84ms

    json, one object per line:

        {"request_id": "a1b2c3d4", "method": "GET", "path": "/docs/",
         "client_ip": "127.0.0.1", "user_agent": "curl/8.5.0",
         "status_code": 200, "content_length": 1432, "duration_ms": 0.84,
         "timestamp": "19/Oct/2026:12:00:00 +0000"}

The size is the declared Content-Length. File bodies are streamed after
the pipeline returns, so the line is written before the last byte is.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Optional, Tuple

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("staticserver.access")

CLF_TIME_FORMAT = "%d/%b/%Y:%H:%M:%S %z"


@dataclass
class RequestLog:
    """What the access log knows about one answered request."""

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    @classmethod
    def capture(
        cls,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        started: float,
        client_address: Tuple[str, int] = ("", 0),
    ) -> "RequestLog":
        """Build the entry; with no request (unparseable head) method and path are "-"."""
        if request is not None:
            client_address = request.client_address
        return cls(
            request_id=uuid.uuid4().hex[:8],
            method=request.method if request else "-",
            path=request.path if request else "-",
            client_ip=client_address[0] or "-",
            user_agent=(request.user_agent if request else "") or "-",
            status_code=int(response.status),
            content_length=response.content_length,
            duration_ms=(time.perf_counter() - started) * 1000,
            timestamp=time.strftime(CLF_TIME_FORMAT),
        )

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        request_line = f"{self.method} {self.path}"
        return (
            f'{self.client_ip} - - [{self.timestamp}] "{request_line}" '
            f'{self.status_code} {self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Writes the access log.

    Added first, so it sees requests that ValidationMiddleware turns away
    and its timing covers the whole pipeline. A handler exception is logged
    at ERROR and re-raised for the server to turn into a 500.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" or "json".
            log_level: Level for the access lines.
        """
        self.log_format = log_format
        self.log_level = log_level

    def format(self, entry: RequestLog) -> str:
        if self.log_format == "json":
            return json.dumps(entry.to_dict())
        return entry.to_text()

    def log_unparsed(self, client_address: Tuple[str, int], response: HTTPResponse, started: float):
        """
        Access-log a response to a request head that never parsed (400, 414,
        431). Such requests never reach the pipeline, so the server calls
        this directly.
        """
        entry = RequestLog.capture(None, response, started, client_address)
        logger.log(self.log_level, self.format(entry))

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        started = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"({type(e).__name__}: {e}) after "
                f"{(time.perf_counter() - started) * 1000:.2f}ms"
            )
            raise

        logger.log(self.log_level, self.format(RequestLog.capture(request, response, started)))
        return response
