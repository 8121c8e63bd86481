"""Glue between a connection handle and a service.

``extract`` turns a handle into a ``Request``, ``dispatch`` writes a
``Response`` back, and ``ServiceAdapter`` strings the two together around a
service call. The handle returned by each handle call replaces the one it was
called on; a handle is never reused after it has been superseded.
"""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Mapping, Protocol, Sequence

import anyio
import anyio.to_thread

from .http.cookies import AttributeValue, CookieDirective, parse_cookie_header
from .http.models import Body, Header, Request, Response, method_from_raw, scheme_from_raw


logger = logging.getLogger(__name__)

Service = Callable[[Request], Response | Awaitable[Response]]

SET_COOKIE = "set-cookie"


class ConnectionHandle(Protocol):
    """What the adapter needs from the listener's per-request handle."""

    def method(self) -> str: ...
    def scheme(self) -> str: ...
    def headers(self) -> Sequence[Header]: ...
    def host(self) -> str: ...
    def port(self) -> int | None: ...
    def path(self) -> str: ...
    def query(self) -> str: ...
    async def read_body(self) -> tuple[bytes, "ConnectionHandle"]: ...
    def set_cookie(self, name: str, value: str, attributes: Mapping[str, AttributeValue]) -> "ConnectionHandle": ...
    async def reply(self, status: int, headers: Sequence[Header], body: Body) -> "ConnectionHandle": ...


async def extract(handle: ConnectionHandle) -> tuple[Request, ConnectionHandle]:
    """
    Build a ``Request`` from ``handle``.

    The body is drained with a single ``read_body()`` call; every other field is
    read once from the handle that call returns. An empty query becomes None.
    """
    body, handle = await handle.read_body()
    query = handle.query()
    request = Request(
        body=body,
        headers=tuple(handle.headers()),
        host=handle.host(),
        method=method_from_raw(handle.method()),
        path=handle.path(),
        port=handle.port(),
        query=query or None,
        scheme=scheme_from_raw(handle.scheme()),
    )
    return request, handle


def partition_headers(headers: Sequence[Header]) -> tuple[list[Header], list[str]]:
    """Split headers into ordinary ones and ``set-cookie`` values, keeping order."""
    ordinary: list[Header] = []
    cookies: list[str] = []
    for k, v in headers:
        if k == SET_COOKIE:
            cookies.append(v)
        else:
            ordinary.append((k, v))
    return ordinary, cookies


async def dispatch(response: Response, handle: ConnectionHandle) -> ConnectionHandle:
    """
    Write ``response`` onto ``handle`` and finalize it.

    Each ``set-cookie`` header is parsed and applied with its own
    ``set_cookie()`` call before the single terminal ``reply()``. Cookie headers
    that yield no name/value are skipped. The returned handle is finalized.
    """
    ordinary, cookie_values = partition_headers(response.headers)
    for raw in cookie_values:
        directive = CookieDirective.from_pairs(parse_cookie_header(raw))
        if directive is None:
            logger.debug("dropping set-cookie header without name/value: %r", raw)
            continue
        handle = handle.set_cookie(directive.name, directive.value, directive.attributes)
    return await handle.reply(response.status, ordinary, response.body)


def _is_async_callable(obj: object) -> bool:
    return inspect.iscoroutinefunction(obj) or inspect.iscoroutinefunction(getattr(obj, "__call__", None))


class ServiceAdapter:
    """
    Per-request callback handed to the listener.

    Async services are awaited in the connection's task; sync services run in a
    worker thread. A service that raises is answered with a plain 500.
    """

    def __init__(self, service: Service):
        self._service = service
        self._is_async = _is_async_callable(service)

    async def call_service(self, request: Request) -> Response:
        if self._is_async:
            result = self._service(request)
        else:
            result = await anyio.to_thread.run_sync(self._service, request)
        if inspect.isawaitable(result):
            result = await result
        if not isinstance(result, Response):
            raise TypeError(f"service returned {type(result).__name__}, expected Response")
        return result

    async def __call__(self, handle: ConnectionHandle) -> ConnectionHandle:
        request, handle = await extract(handle)
        try:
            response = await self.call_service(request)
        except Exception:
            logger.exception("service failed on %s %s", request.method.value, request.path)
            response = Response.text("internal server error", status=500)
        return await dispatch(response, handle)
