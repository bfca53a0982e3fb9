"""
=============================================================================
DIRECTORY LISTING
=============================================================================

Renders the HTML index page for a directory that has no index.html.

    ┌─────────────────────────────────────────────┐
    │  /docs/                                     │  ← <h1>, also <title>
    │  ─────────────────────────────────────────  │
    │  📁 ../                                     │  ← always first
    │  📁 images/                                 │
    │  📄 guide.html                              │
    │  📄 notes & todo.txt                        │
    └─────────────────────────────────────────────┘

=============================================================================
TEXT VS LINKS
=============================================================================

An entry name ends up in two places, and each needs its own escaping:

    <a href="notes%20%26%20todo.txt">📄 notes &amp; todo.txt</a>
             ───────────┬──────────     ──────────┬──────────
              urlcodec.encode()             html_escape()

Link targets are percent-encoded (which also makes them HTML-safe: every
byte outside [A-Za-z0-9.~_-] becomes %XX). Visible text is HTML-escaped.
Mixing the two up is how listing pages become XSS vectors.

=============================================================================
"""

import os
from typing import Optional

from ..http import urlcodec


_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
}

FOLDER_ICON = "\U0001F4C1"  # 📁
FILE_ICON = "\U0001F4C4"  # 📄


def html_escape(text: str) -> str:
    """
    Escape the five HTML-significant characters.

        >>> html_escape("<a&b>")
        '&lt;a&amp;b&gt;'
    """
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in text)


def _is_dir(entry: os.DirEntry) -> bool:
    # Broken symlinks and races with deletion count as plain files
    try:
        return entry.is_dir()
    except OSError:
        return False


def _entry_item(name: str, is_dir: bool) -> str:
    icon = FOLDER_ICON if is_dir else FILE_ICON
    suffix = "/" if is_dir else ""
    return (
        f'<li><a href="{urlcodec.encode(name)}">'
        f"{icon} {html_escape(name)}{suffix}</a></li>"
    )


def render(dir_path: str, display_path: Optional[str] = None) -> bytes:
    """
    Render the listing page for `dir_path`.

    Args:
        dir_path: Directory to list (root-relative).
        display_path: Heading/title text; defaults to `dir_path`. The
            static handler passes the decoded request path here.

    Returns:
        A complete UTF-8 encoded HTML document.

    Raises:
        OSError: The directory cannot be read.
    """
    title = html_escape(dir_path if display_path is None else display_path)

    with os.scandir(dir_path) as it:
        children = sorted((entry.name, _is_dir(entry)) for entry in it)

    items = [_entry_item("..", True)]
    items.extend(_entry_item(name, is_dir) for name, is_dir in children)
    entries = "\n        ".join(items)

    html = f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{title}</title>
    <style>
        body {{ font-family: monospace; padding: 20px; }}
        h1 {{ border-bottom: 1px solid #ccc; padding-bottom: 10px; }}
        ul {{ list-style: none; padding: 0; }}
        li {{ padding: 5px 0; }}
        a {{ text-decoration: none; color: #0066cc; }}
        a:hover {{ text-decoration: underline; }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <ul>
        {entries}
    </ul>
</body>
</html>
"""
    # Undecodable filename bytes survive as surrogates; they show as "?"
    return html.encode("utf-8", "replace")
