"""
=============================================================================
RESOURCE RESOLVER
=============================================================================

Maps a raw request target onto something in the document root.

    GET /docs/guide%20v2.html?x=1 HTTP/1.1
        │
        ▼
    strip leading "/"           docs/guide%20v2.html?x=1
    cut at first "?"            docs/guide%20v2.html
    percent-decode              docs/guide v2.html
    normalize                   /docs/guide v2.html
    strip leading "/"           docs/guide v2.html     ("" becomes ".")
        │
        ▼
    candidate                   is it a regular file?   → FILE
    candidate/index.html        is it a regular file?   → FILE (via_index)
    candidate/index.htm         is it a regular file?   → FILE (via_index)
    candidate                   is it a directory?      → DIRECTORY
                                otherwise               → NOT_FOUND

=============================================================================
WHY PATHS NEVER ESCAPE THE ROOT
=============================================================================

normalize() treats every path as rooted at "/" and drops any ".." that
would climb above it, so after the leading "/" is stripped the candidate
is always relative to the current working directory - which the server
chdir()s into at startup:

    /../../etc/passwd   → normalize → /etc/passwd → etc/passwd

    (relative to the document root, never the real /etc/passwd)

Decoding happens BEFORE normalizing, so %2e%2e is a ".." like any other.

=============================================================================
"""

import os
from dataclasses import dataclass
from enum import Enum

from ..http import urlcodec
from ..http.paths import normalize


INDEX_FILES = ("index.html", "index.htm")


class TargetKind(Enum):
    """What a request path resolved to."""
    FILE = "file"
    DIRECTORY = "directory"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    Result of resolving one request path.

    Attributes:
        kind: FILE, DIRECTORY or NOT_FOUND.
        path: Root-relative filesystem path. For a FILE reached through an
            index fallback this is the index file itself.
        via_index: True when the request named a directory and an index
            file inside it was chosen.
    """

    kind: TargetKind
    path: str
    via_index: bool = False

    @property
    def is_directory_request(self) -> bool:
        """True when the request named a directory (listing or index)."""
        return self.kind is TargetKind.DIRECTORY or self.via_index


def to_relative(raw_path: str) -> str:
    """
    Turn a raw request target into a root-relative filesystem path.

        >>> to_relative("/a/b/../c%20d?q=1")
        'a/c d'
        >>> to_relative("/")
        '.'
    """
    path = raw_path.lstrip("/").split("?", 1)[0]
    path = normalize(urlcodec.decode(path)).lstrip("/")
    return path or "."


def resolve(raw_path: str) -> ResolvedTarget:
    """
    Resolve a raw request target against the current working directory.

    Args:
        raw_path: The path token from the request line, query included.

    Returns:
        A ResolvedTarget. Missing paths are a NOT_FOUND result, not an
        exception.
    """
    candidate = to_relative(raw_path)

    if os.path.isfile(candidate):
        return ResolvedTarget(TargetKind.FILE, candidate)

    for index in INDEX_FILES:
        index_path = os.path.join(candidate, index)
        if os.path.isfile(index_path):
            return ResolvedTarget(TargetKind.FILE, index_path, via_index=True)

    if os.path.isdir(candidate):
        return ResolvedTarget(TargetKind.DIRECTORY, candidate)

    return ResolvedTarget(TargetKind.NOT_FOUND, candidate)
