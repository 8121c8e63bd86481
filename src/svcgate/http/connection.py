"""Per-request connection handle built on an AnyIO socket stream.

A ``Connection`` is the listener's side of one HTTP/1.1 exchange:

- the request head is parsed when the connection is opened
- accessors (``method()``, ``path()``, ...) are pure reads
- ``read_body()``, ``set_cookie()`` and ``reply()`` advance the exchange and
  return a fresh handle; the handle they were called on becomes stale
- ``reply()`` is terminal, after it no handle may be used

Using a stale handle raises ``StaleHandleError``. The handle is not meant to be
shared between tasks.

Only ``Content-Length`` bodies are supported (no chunked encoding) and every
exchange ends with ``Connection: close``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Mapping, Sequence
from urllib.parse import urlsplit

import anyio
from anyio.abc import ByteStream

from ..config import AdapterConfig
from ..errors import ProtocolError, StaleHandleError
from .cookies import AttributeValue, CookieDirective, format_set_cookie
from .models import Body, Header


logger = logging.getLogger(__name__)

# absolute-form targets only; origin-form "//x/y" is a path, not an authority
_ABSOLUTE_TARGET = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")

_FORBIDDEN_HEADER_CHARS = frozenset("\r\n\0")


@dataclass(frozen=True, slots=True)
class RequestHead:
    method: str
    target: str
    version: str
    headers: tuple[Header, ...]


async def _read_until(stream: ByteStream, marker: bytes, max_bytes: int) -> tuple[bytes, bytes]:
    """Read up to and including ``marker``; returns ``(head, leftover)``."""
    buf = bytearray()
    while True:
        idx = buf.find(marker)
        if idx != -1:
            end = idx + len(marker)
            return bytes(buf[:end]), bytes(buf[end:])
        if len(buf) > max_bytes:
            raise ProtocolError("request head too large", status=431)
        try:
            chunk = await stream.receive(4096)
        except anyio.EndOfStream:
            return bytes(buf), b""
        if not chunk:
            return bytes(buf), b""
        buf.extend(chunk)


async def _read_exact(stream: ByteStream, n: int) -> bytes:
    buf = bytearray()
    while len(buf) < n:
        try:
            chunk = await stream.receive(n - len(buf))
        except anyio.EndOfStream:
            break
        if not chunk:
            break
        buf.extend(chunk)
    return bytes(buf)


def parse_head(block: bytes) -> RequestHead:
    """Parse a request line plus header block ending with CRLF CRLF."""
    head = block.decode("iso-8859-1")
    lines = head.split("\r\n")
    if not lines or not lines[0]:
        raise ProtocolError("missing request line")

    parts = lines[0].split(" ")
    if len(parts) != 3:
        raise ProtocolError("invalid request line")
    method, target, version = parts
    if not method or not target or not version.startswith("HTTP/"):
        raise ProtocolError("invalid request line")

    headers: list[Header] = []
    for line in lines[1:]:
        if line == "":
            break
        if ":" not in line:
            raise ProtocolError(f"invalid header line: {line!r}")
        k, v = line.split(":", 1)
        k = k.strip()
        if not k:
            raise ProtocolError(f"invalid header line: {line!r}")
        headers.append((k, v.strip()))
    return RequestHead(method=method, target=target, version=version, headers=tuple(headers))


def split_authority(authority: str) -> tuple[str, int | None]:
    """Split ``host[:port]`` (IPv6 literals in brackets) into host and port."""
    if authority.startswith("["):
        end = authority.find("]")
        if end == -1:
            return authority, None
        host, rest = authority[: end + 1], authority[end + 1 :]
        port = rest[1:] if rest.startswith(":") else ""
    else:
        name, sep, port = authority.rpartition(":")
        if not sep:
            return authority, None
        host = name
    return host, int(port) if _is_decimal(port) else None


def _is_decimal(s: str) -> bool:
    # str.isdigit() also accepts non-ASCII digits such as "\u00b2", which int() rejects.
    return s.isascii() and s.isdigit()


def split_target(target: str) -> tuple[str, str, str, str]:
    """
    Split a request target into ``(scheme, authority, path, query)``.

    Only absolute-form targets (``http://host/path``) carry a scheme and an
    authority; anything else is split on the first ``?`` as given.
    """
    if _ABSOLUTE_TARGET.match(target):
        split = urlsplit(target)
        return split.scheme, split.netloc, split.path or "/", split.query
    path, _, query = target.partition("?")
    return "", "", path or "/", query


def _first_header(headers: Sequence[Header], name: str) -> str | None:
    for k, v in headers:
        if k.lower() == name:
            return v
    return None


def _content_length(headers: Sequence[Header], max_body_bytes: int) -> int:
    values = {v for k, v in headers if k.lower() == "content-length"}
    if len(values) > 1:
        raise ProtocolError("conflicting content-length headers")
    raw = values.pop() if values else ""
    if raw == "":
        return 0
    if not _is_decimal(raw):
        raise ProtocolError(f"invalid content-length: {raw!r}")
    length = int(raw)
    if length > max_body_bytes:
        raise ProtocolError("payload too large", status=413)
    return length


def _http_date() -> str:
    return datetime.now(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S GMT")


def _status_line(status: int) -> str:
    try:
        reason = HTTPStatus(status).phrase
    except ValueError:
        reason = ""
    return f"HTTP/1.1 {status:03d} {reason}\r\n"


def _checked_header(name: str, value: str) -> Header:
    if not name or any(ch in _FORBIDDEN_HEADER_CHARS for ch in name + value):
        raise ValueError(f"invalid response header: {name!r}")
    return name, value


def _collect_body(body: Body) -> bytes:
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    return b"".join(body)


class _ExchangeState:
    """State shared by every handle of one exchange."""

    __slots__ = (
        "stream",
        "config",
        "head",
        "leftover",
        "content_length",
        "generation",
        "body_read",
        "finalized",
        "cookies",
        "scheme",
        "authority",
        "path",
        "query",
    )

    def __init__(self, stream: ByteStream, config: AdapterConfig, head: RequestHead, leftover: bytes):
        self.stream = stream
        self.config = config
        self.head = head
        self.leftover = leftover
        self.content_length = _content_length(head.headers, config.max_body_bytes)
        self.scheme, authority, self.path, self.query = split_target(head.target)
        self.authority = authority or _first_header(head.headers, "host") or ""
        self.generation = 0
        self.body_read = False
        self.finalized = False
        self.cookies: list[CookieDirective] = []


class Connection:
    """Opaque handle for one request/response exchange."""

    __slots__ = ("_state", "_generation")

    def __init__(self, state: _ExchangeState, generation: int = 0):
        self._state = state
        self._generation = generation

    @classmethod
    async def open(cls, stream: ByteStream, config: AdapterConfig) -> "Connection":
        """
        Read and parse a request head from ``stream``.

        Raises ``ProtocolError`` for malformed or oversized heads and
        ``anyio.EndOfStream`` if the peer closed without sending anything. The
        body is left unread until ``read_body()``.
        """
        block, leftover = await _read_until(stream, b"\r\n\r\n", config.max_header_bytes)
        if not block:
            raise anyio.EndOfStream
        if not block.endswith(b"\r\n\r\n"):
            raise ProtocolError("incomplete request head")
        head = parse_head(block)
        return cls(_ExchangeState(stream, config, head, leftover))

    def _check(self) -> _ExchangeState:
        state = self._state
        if state.finalized:
            raise StaleHandleError("connection already replied")
        if self._generation != state.generation:
            raise StaleHandleError("stale connection handle")
        return state

    def _advance(self) -> "Connection":
        self._state.generation += 1
        return Connection(self._state, self._state.generation)

    @property
    def finalized(self) -> bool:
        """True once any handle of this exchange has replied."""
        return self._state.finalized

    # --- accessors ---

    def method(self) -> str:
        return self._check().head.method

    def scheme(self) -> str:
        state = self._check()
        return state.scheme or state.config.scheme

    def headers(self) -> list[Header]:
        return list(self._check().head.headers)

    def host(self) -> str:
        return split_authority(self._check().authority)[0]

    def port(self) -> int | None:
        return split_authority(self._check().authority)[1]

    def path(self) -> str:
        return self._check().path

    def query(self) -> str:
        return self._check().query

    # --- mutators ---

    async def read_body(self) -> tuple[bytes, "Connection"]:
        """Drain the whole request body. May be called once per exchange."""
        state = self._check()
        if state.body_read:
            raise StaleHandleError("request body already consumed")
        state.body_read = True

        body = state.leftover[: state.content_length]
        missing = state.content_length - len(body)
        if missing > 0:
            with anyio.fail_after(state.config.read_timeout):
                body += await _read_exact(state.stream, missing)
        state.leftover = b""
        return body, self._advance()

    def set_cookie(self, name: str, value: str, attributes: Mapping[str, AttributeValue]) -> "Connection":
        state = self._check()
        state.cookies.append(CookieDirective(name=name, value=value, attributes=dict(attributes)))
        return self._advance()

    async def reply(self, status: int, headers: Sequence[Header], body: Body) -> "Connection":
        """
        Write the response and finalize the exchange.

        Recorded cookies are written as one ``Set-Cookie`` line each. The
        returned handle is already finalized.
        """
        state = self._check()
        payload = _collect_body(body)
        lines = [_checked_header(k, v) for k, v in headers]
        lines.extend(("Set-Cookie", format_set_cookie(c)) for c in state.cookies)

        present = {k.lower() for k, _ in lines}
        defaults = (
            ("Content-Length", str(len(payload))),
            ("Connection", "close"),
            ("Date", _http_date()),
            ("Server", state.config.server_name),
        )
        for k, v in defaults:
            if k.lower() not in present:
                lines.append((k, v))

        start = _status_line(status).encode("ascii")
        head = b"".join(f"{k}: {v}\r\n".encode("iso-8859-1") for k, v in lines)
        if state.head.method == "HEAD":
            payload = b""

        handle = self._advance()
        state.finalized = True
        await state.stream.send(start + head + b"\r\n" + payload)
        logger.debug("%s %s -> %d", state.head.method, state.head.target, status)
        return handle


async def write_error(stream: ByteStream, status: int, message: str, server_name: str = "svcgate") -> None:
    """Answer a request that never made it to a ``Connection``."""
    body = message.encode("utf-8")
    head = (
        _status_line(status)
        + "Content-Type: text/plain; charset=utf-8\r\n"
        + f"Content-Length: {len(body)}\r\n"
        + "Connection: close\r\n"
        + f"Date: {_http_date()}\r\n"
        + f"Server: {server_name}\r\n"
        + "\r\n"
    )
    await stream.send(head.encode("ascii") + body)
