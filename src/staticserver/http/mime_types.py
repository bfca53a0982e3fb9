"""
=============================================================================
MIME TYPE LOOKUP
=============================================================================

Static extension → MIME type table for the Content-Type of served files.

Only the extension of the FINAL path segment matters:

    docs/report.pdf          → application/pdf
    release.tar.gz           → application/gzip   (last suffix wins)
    INDEX.HTML               → text/html          (case-insensitive)
    Makefile, .bashrc        → application/octet-stream (no extension)

Files are served as raw bytes, so no charset parameter is appended: the
server has no idea what encoding a file on disk uses.

=============================================================================
"""

import posixpath


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".xml": "application/xml",
    ".json": "application/json",
    ".map": "application/json",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".7z": "application/x-7z-compressed",
    ".wasm": "application/wasm",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: str) -> str:
    """
    Get the MIME type for a root-relative file path.

    Examples:
        >>> get_mime_type("css/site.css")
        'text/css'
        >>> get_mime_type("./index.html")
        'text/html'
        >>> get_mime_type("bin/tool")
        'application/octet-stream'
    """
    name = posixpath.basename(path)
    extension = posixpath.splitext(name)[1].lower()
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)
