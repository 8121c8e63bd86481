"""HTTP records, cookie directives and the per-request connection handle."""

from .connection import Connection
from .cookies import CookieDirective, format_set_cookie, is_valid_token, parse_cookie_header
from .models import Method, Request, Response, Scheme, method_from_raw, scheme_from_raw

__all__ = [
    "Connection",
    "CookieDirective",
    "format_set_cookie",
    "is_valid_token",
    "parse_cookie_header",
    "Method",
    "Request",
    "Response",
    "Scheme",
    "method_from_raw",
    "scheme_from_raw",
]
