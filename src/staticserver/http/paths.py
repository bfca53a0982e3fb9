"""
=============================================================================
URL PATH NORMALIZATION
=============================================================================

Collapses a slash-delimited logical path into its canonical absolute form.

=============================================================================
WHY NORMALIZE?
=============================================================================

A client controls the request path completely. Without normalization an
attacker can walk out of the document root:

    GET /../../../../etc/passwd HTTP/1.1
    GET /docs/%2e%2e/%2e%2e/etc/shadow HTTP/1.1   (after percent-decoding)

We treat the path as if it were rooted at "/" and resolve "." and ".."
ourselves, on the logical path, BEFORE it ever touches the filesystem:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    STACK-BASED NORMALIZATION                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   input:  /usr/bin/../lib//./                                       │
    │                                                                      │
    │   segment     action          stack                                  │
    │   ───────     ──────          ─────                                  │
    │   "usr"       push            [usr]                                  │
    │   "bin"       push            [usr, bin]                             │
    │   ".."        pop             [usr]                                  │
    │   "lib"       push            [usr, lib]                             │
    │   ""          drop            [usr, lib]                             │
    │   "."         drop            [usr, lib]                             │
    │   ""          drop            [usr, lib]                             │
    │                                                                      │
    │   output: /usr/lib                                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A ".." on an empty stack is simply dropped: there is nothing above the
root, so "/../../etc/passwd" becomes "/etc/passwd", never an escape and
never an error.

Note that the trailing slash is NOT preserved. Callers that care about
"/docs" vs "/docs/" (the directory redirect does) must look at the raw
request path themselves.

=============================================================================
"""


def normalize(path: str) -> str:
    """
    Normalize a logical URL path.

    Total function: every input yields a path that starts with "/" and
    contains no "." or ".." segments.

    Examples:
        >>> normalize("../../etc/passwd")
        '/etc/passwd'
        >>> normalize("/usr/bin/../lib//./")
        '/usr/lib'
        >>> normalize("")
        '/'
    """
    stack: list[str] = []

    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if stack:
                stack.pop()
            continue
        stack.append(segment)

    return "/" + "/".join(stack)
