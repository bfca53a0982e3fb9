"""
Rejects requests the server does not serve.

A request can parse cleanly and still be unusable: "POST / HTTP/1.1",
"GET / HTTP/1.0", "GET index.html HTTP/1.1". validate_request() spots
these; this middleware turns the resulting ProtocolValidationError into a
400 response so the access log (outside it) still records the rejection,
and the handler (inside it) only ever sees GET requests for absolute paths.
"""

import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest, ProtocolValidationError, validate_request
from ..http.response import HTTPResponse, error_response


logger = logging.getLogger(__name__)


class ValidationMiddleware(Middleware):
    """Short-circuits with 400 Bad Request on unsupported method/version/path."""

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        try:
            validate_request(request)
        except ProtocolValidationError as e:
            logger.warning(f"Rejected request from {request.client_address[0]}: {e}")
            return error_response(e.status_code)

        return next(request)
