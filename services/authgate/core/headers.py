"""
Header forwarding profiles.

Only allow-listed headers ever reach the wwwhisper backend. Cookies are
filtered further so that application cookies stay with the application.
"""

from typing import Dict, Iterable, List, Optional, Tuple

import httpx
from starlette.datastructures import Headers
from starlette.types import Scope

from ..version import __version__

AUTH_COOKIES_PREFIX = "wwwhisper-"
USER_AGENT = f"python-{__version__}"

# Canonical spelling is what the backend receives.
AUTH_QUERY_HEADERS = ("Accept", "Accept-Language", "Cookie")
PROXY_HEADERS = AUTH_QUERY_HEADERS + (
    "Origin",
    "X-Csrftoken",
    "X-Requested-With",
    "Content-Type",
    "Content-Length",
)

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)


def auth_cookies(cookie_header: str) -> Optional[str]:
    """
    Keep only the cookies that belong to wwwhisper.

    Returns None when no cookie matches so the header can be left out.
    """
    selected = []
    for pair in cookie_header.split(";"):
        pair = pair.strip()
        if pair.startswith(AUTH_COOKIES_PREFIX):
            selected.append(pair)
    if not selected:
        return None
    return "; ".join(selected)


def site_url(scope: Scope) -> str:
    """
    Reconstruct ``<scheme>://<host>`` of the protected site.

    A proxy in front of the gate may terminate TLS, so X-Forwarded-Proto
    wins over the connection scheme.
    """
    headers = Headers(scope=scope)
    forwarded_proto = headers.get("x-forwarded-proto")
    if forwarded_proto:
        scheme = forwarded_proto.split(",")[0].strip().lower()
    else:
        scheme = "https" if scope.get("scheme") in ("https", "wss") else "http"

    host = headers.get("host")
    if not host:
        server = scope.get("server")
        if server and server[1] is not None:
            host = f"{server[0]}:{server[1]}"
        elif server:
            host = server[0]
        else:
            host = "localhost"
    return f"{scheme}://{host}"


def _select(scope: Scope, names: Iterable[str]) -> Dict[str, str]:
    headers = Headers(scope=scope)
    selected: Dict[str, str] = {}
    for name in names:
        value = headers.get(name)
        if value is None:
            continue
        if name == "Cookie":
            value = auth_cookies(value)
            if value is None:
                continue
        selected[name] = value
    selected["Site-Url"] = site_url(scope)
    selected["User-Agent"] = USER_AGENT
    return selected


def auth_query_headers(scope: Scope) -> Dict[str, str]:
    """Headers for the is-authorized query."""
    return _select(scope, AUTH_QUERY_HEADERS)


def proxy_headers(scope: Scope) -> Dict[str, str]:
    """Headers for a request proxied to the backend's own endpoints."""
    return _select(scope, PROXY_HEADERS)


def relay_headers(headers: httpx.Headers) -> List[Tuple[bytes, bytes]]:
    """Raw backend response headers minus hop-by-hop ones, duplicates kept."""
    return [
        (name.lower(), value)
        for name, value in headers.raw
        if name.decode("latin-1").lower() not in HOP_BY_HOP_HEADERS
    ]
