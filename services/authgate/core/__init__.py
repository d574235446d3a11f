"""
Core logic package.

Path canonicalization, header forwarding profiles and HTML rewriting.
"""

from .headers import auth_cookies, auth_query_headers, proxy_headers, site_url
from .injector import InjectingSend, inject_script, should_inject
from .paths import is_login_path, is_wwwhisper_path, normalize_path

__all__ = [
    "auth_cookies",
    "auth_query_headers",
    "proxy_headers",
    "site_url",
    "InjectingSend",
    "inject_script",
    "should_inject",
    "is_login_path",
    "is_wwwhisper_path",
    "normalize_path",
]
