"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a validated GET request into a response: file contents, a directory
listing, a trailing-slash redirect, or 404.

=============================================================================
DECISION TABLE
=============================================================================

    resolve(path)                     path ends in "/"?   Response
    ────────────────────────────────  ─────────────────   ─────────────────────
    DIRECTORY                         no                  301 → path + "/"
    FILE via index.html / index.htm   no                  301 → path + "/"
    DIRECTORY                         yes                 200 listing (HTML)
    FILE via index                    yes                 200 index file
    FILE                              -                   200 file
    NOT_FOUND                         -                   404, empty body

The query string is not part of the "ends in /" check; it is carried over
into the Location header:

    GET /docs?page=2   →   301  Location: /docs/?page=2

=============================================================================
WHY THE REDIRECT?
=============================================================================

Relative links on a directory page resolve against the URL, not the disk:

    Page URL /docs    +  href="guide.html"  →  /guide.html        (wrong)
    Page URL /docs/   +  href="guide.html"  →  /docs/guide.html   (right)

So every directory is only ever served under its slash-terminated URL.

=============================================================================
SERVING FILES
=============================================================================

The file is opened here, before any byte of the response is written, and
handed to the response as an open stream. Errors therefore still map to a
clean status:

    PermissionError   → 403 Forbidden
    other OSError     → 500 Internal Server Error (e.g. deleted meanwhile)

=============================================================================
"""

import logging
import os

from ..http import urlcodec
from ..http.mime_types import get_mime_type
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    error_response, forbidden, moved_permanently, not_found,
)
from . import listing
from .resolver import ResolvedTarget, TargetKind, resolve


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves the current working directory.

    Stateless: one instance is shared by every worker thread, and each call
    to handle() works only on its own request and the filesystem.

    =========================================================================
    USAGE
    =========================================================================

        os.chdir("/var/www")
        handler = StaticFileHandler()
        response = handler.handle(request)
        response.write_to(wfile)

    =========================================================================
    """

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Handle one validated GET request.

        Args:
            request: The parsed request; only `path` is used.

        Returns:
            The response to write. A FILE response holds an open file that
            write_to() (or close()) releases.
        """
        target = resolve(request.path)
        path_only, sep, query = request.path.partition("?")

        # ─────────────────────────────────────────────────────────────────
        # TRAILING-SLASH REDIRECT
        # ─────────────────────────────────────────────────────────────────
        if target.is_directory_request and not path_only.endswith("/"):
            location = path_only + "/"
            if sep:
                location += "?" + query
            logger.debug(f"Redirecting {request.path} -> {location}")
            return moved_permanently(location)

        if target.kind is TargetKind.FILE:
            return self._serve_file(target)

        if target.kind is TargetKind.DIRECTORY:
            return self._serve_listing(target, urlcodec.decode(path_only))

        return not_found()

    def _serve_file(self, target: ResolvedTarget) -> HTTPResponse:
        """Open the file and build a streamed 200 response."""
        try:
            stream = open(target.path, "rb")
        except PermissionError:
            logger.warning(f"Permission denied: {target.path}")
            return forbidden()
        except OSError as e:
            logger.error(f"Error opening {target.path}: {e}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

        try:
            size = os.fstat(stream.fileno()).st_size
        except OSError as e:
            stream.close()
            logger.error(f"Error reading size of {target.path}: {e}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .file(stream, size, get_mime_type(target.path))
            .build())

    def _serve_listing(self, target: ResolvedTarget, display_path: str) -> HTTPResponse:
        """Render the directory listing page."""
        try:
            page = listing.render(target.path, display_path)
        except PermissionError:
            logger.warning(f"Permission denied listing: {target.path}")
            return forbidden()
        except OSError as e:
            logger.error(f"Error listing {target.path}: {e}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

        return ResponseBuilder().status(HTTPStatus.OK).html(page).build()
