"""
Request path handling.

Canonicalizes request paths before they are authorized and classifies
them against the reserved /wwwhisper/ namespace.
"""

import re

WWWHISPER_PREFIX = "/wwwhisper/"
LOGIN_PREFIX = WWWHISPER_PREFIX + "auth/"
AUTH_QUERY_PATH = LOGIN_PREFIX + "api/is-authorized/"

_SLASHES = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """
    Return the canonical absolute form of a request path.

    Repeated slashes are collapsed, then dot segments are removed as in
    RFC 3986 section 5.2.4. ``..`` never climbs above the root, and a
    trailing ``.`` or ``..`` leaves a trailing slash.

    >>> normalize_path("/foo/./bar/../../bar")
    '/bar'
    >>> normalize_path("")
    '/'
    """
    if not path.startswith("/"):
        path = "/" + path
    path = _SLASHES.sub("/", path)

    segments = path.split("/")[1:]
    output = []
    last = len(segments) - 1
    for idx, segment in enumerate(segments):
        if segment in (".", ".."):
            if segment == ".." and output:
                output.pop()
            if idx == last:
                output.append("")
            continue
        output.append(segment)
    return "/" + "/".join(output)


def is_login_path(path: str) -> bool:
    """Login and iframe resources, reachable without authorization."""
    return path.startswith(LOGIN_PREFIX)


def is_wwwhisper_path(path: str) -> bool:
    """Anything served by the backend itself (admin, login, assets)."""
    return path.startswith(WWWHISPER_PREFIX)
