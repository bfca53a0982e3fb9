"""
=============================================================================
MIDDLEWARE
=============================================================================

A middleware sits between the server and the static file handler and sees
every parsed request on its way in and every response on its way out:

    request ──► LoggingMiddleware ──► ValidationMiddleware ──► handler
    response ◄──        │          ◄──        │             ◄──┘
                  access log line      400 for anything but
                                       GET <abs-path> HTTP/1.1

It either passes the request on with next(request) or answers by itself.

=============================================================================
"""

import functools
import logging
from abc import ABC, abstractmethod
from typing import Callable, List

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

# Whatever comes after a middleware: another middleware or the handler
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Elapsed", ...)
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Answer `request`, usually by way of next(request)."""

    @property
    def name(self) -> str:
        return type(self).__name__


class MiddlewarePipeline:
    """
    An ordered list of middleware, outermost first.

        handle = (MiddlewarePipeline()
                  .add(LoggingMiddleware())
                  .add(ValidationMiddleware())
                  .wrap(StaticFileHandler().handle))
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append `middleware` inside everything added so far."""
        self._middleware.append(middleware)
        logger.debug(f"Pipeline: {' -> '.join(m.name for m in self._middleware)}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """Return a single callable running the whole chain, then `handler`."""
        chain = handler
        for middleware in reversed(self._middleware):
            chain = functools.partial(middleware, next=chain)
        return chain

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
