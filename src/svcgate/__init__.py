"""HTTP adapter between a connection-per-request listener and a Request -> Response service."""

__version__ = "0.1.0"

from .errors import ProtocolError, ServerStartError, StaleHandleError, SvcgateError
from .config import AdapterConfig
from .http.models import Method, Request, Response, Scheme, method_from_raw, scheme_from_raw
from .http.cookies import CookieDirective, format_set_cookie, is_valid_token, parse_cookie_header
from .http.connection import Connection
from .adapter import ServiceAdapter, dispatch, extract
from .server import HttpListener, serve, start

__all__ = [
    # Records
    "Method",
    "Request",
    "Response",
    "Scheme",
    "method_from_raw",
    "scheme_from_raw",
    # Cookies
    "CookieDirective",
    "format_set_cookie",
    "is_valid_token",
    "parse_cookie_header",
    # Adapter
    "Connection",
    "ServiceAdapter",
    "dispatch",
    "extract",
    # Listener
    "AdapterConfig",
    "HttpListener",
    "serve",
    "start",
    # Errors
    "SvcgateError",
    "ProtocolError",
    "ServerStartError",
    "StaleHandleError",
]
