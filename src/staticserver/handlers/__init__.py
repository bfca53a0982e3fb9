"""
=============================================================================
HANDLERS MODULE
=============================================================================

Everything between "a valid GET request" and "a response to write":

    HTTPRequest ──► resolver.resolve() ──► ResolvedTarget
                                               │
                        StaticFileHandler ◄────┘
                               │
               ┌───────────────┼────────────────┐
               ▼               ▼                ▼
          open file      listing.render()   301 / 404

    resolver.py   raw path → FILE / DIRECTORY / NOT_FOUND
    listing.py    HTML index page for a directory
    static.py     the decision table that picks the response

=============================================================================
"""

from .listing import html_escape, render
from .resolver import ResolvedTarget, TargetKind, resolve
from .static import StaticFileHandler

__all__ = [
    "StaticFileHandler",
    "ResolvedTarget",
    "TargetKind",
    "resolve",
    "render",
    "html_escape",
]
