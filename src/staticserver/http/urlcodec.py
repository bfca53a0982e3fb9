"""
Percent-encoding helpers for request paths and listing links.

decode() is applied to the path component of every request before it is
normalized. encode() is applied to single directory entry names when the
listing page builds its hyperlinks; it is never used on whole paths.

Both sides use UTF-8 with the "surrogateescape" error handler. Filenames on
POSIX are bytes, not text, so a name that is not valid UTF-8 still encodes
to the exact %XX sequence of its bytes and decodes back to a str that
os.* functions turn into the very same bytes.

Malformed escapes ("%", "%4", "%zz") are passed through literally.
"""

from urllib.parse import quote, unquote_plus


# Bytes that encode() never escapes: ALPHA / DIGIT / "." / "~" / "_" / "-"
UNRESERVED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
    ".~_-"
)


def decode(value: str) -> str:
    """
    Decode a URL path component.

    "+" becomes a space first, then every %XX escape (hex digits in any
    case) becomes the raw byte it names.

        >>> decode("hello+world%21")
        'hello world!'
        >>> decode("caf%C3%A9")
        'café'
        >>> decode("100%")
        '100%'
    """
    return unquote_plus(value, encoding="utf-8", errors="surrogateescape")


def encode(value: str) -> str:
    """
    Percent-encode a directory entry name for use in an href.

    Every byte outside UNRESERVED is written as %XX with uppercase hex.

        >>> encode("<a&b>")
        '%3Ca%26b%3E'
        >>> encode("my file.txt")
        'my%20file.txt'
    """
    # quote()'s always-safe set is exactly UNRESERVED; safe="" drops "/"
    return quote(value, safe="", encoding="utf-8", errors="surrogateescape")
