"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting request processing wrapped around the static file handler.

LoggingMiddleware:
    Access log line per request, text or JSON.

ValidationMiddleware:
    400 Bad Request for anything but "GET /absolute/path HTTP/1.1".

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog
from .validation import ValidationMiddleware

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",

    # Built-in middleware
    "LoggingMiddleware",
    "RequestLog",
    "ValidationMiddleware",
]
