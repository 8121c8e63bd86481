"""Request and Response records exchanged with the service."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence


Header = tuple[str, str]
Body = bytes | Iterable[bytes]


class Method(Enum):
    """HTTP request methods."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    PATCH = "PATCH"
    TRACE = "TRACE"
    CONNECT = "CONNECT"
    OTHER = "OTHER"  # never produced by method_from_raw


class Scheme(Enum):
    """URL schemes a listener can serve."""
    HTTP = "http"
    HTTPS = "https"


_METHODS: dict[str, Method] = {m.value: m for m in Method if m is not Method.OTHER}
_SCHEMES: dict[str, Scheme] = {s.value: s for s in Scheme}


def method_from_raw(raw: str) -> Method:
    """Map a request-line method to ``Method``; unknown values become GET."""
    return _METHODS.get(raw, Method.GET)


def scheme_from_raw(raw: str) -> Scheme:
    """Map a raw scheme string to ``Scheme``; unknown values become HTTP."""
    return _SCHEMES.get(raw, Scheme.HTTP)


@dataclass(frozen=True, slots=True)
class Request:
    """An inbound request, extracted once per connection."""

    body: bytes
    headers: tuple[Header, ...]
    host: str
    method: Method
    path: str
    port: int | None
    query: str | None
    scheme: Scheme

    def header(self, name: str, default: str | None = None) -> str | None:
        """First value of header ``name`` (case-insensitive)."""
        wanted = name.lower()
        for k, v in self.headers:
            if k.lower() == wanted:
                return v
        return default

    def header_values(self, name: str) -> list[str]:
        wanted = name.lower()
        return [v for k, v in self.headers if k.lower() == wanted]


@dataclass(frozen=True, slots=True)
class Response:
    """
    A service's answer.

    ``headers`` is an ordered sequence of ``(name, value)`` pairs; a
    ``set-cookie`` entry may appear any number of times, one per cookie.
    ``body`` is either bytes or an iterable producing bytes.
    """

    status: int = 200
    headers: Sequence[Header] = field(default_factory=tuple)
    body: Body = b""

    def __post_init__(self):
        if not 0 <= self.status <= 999:
            raise ValueError(f"status out of range: {self.status}")

    @staticmethod
    def text(
        text: str,
        *,
        status: int = 200,
        headers: Sequence[Header] = (),
        encoding: str = "utf-8",
    ) -> "Response":
        merged: list[Header] = [("content-type", f"text/plain; charset={encoding}")]
        merged.extend(headers)
        return Response(status=status, headers=tuple(merged), body=text.encode(encoding))

    @staticmethod
    def json(
        obj: Any,
        *,
        status: int = 200,
        headers: Sequence[Header] = (),
    ) -> "Response":
        body = json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        merged: list[Header] = [("content-type", "application/json; charset=utf-8")]
        merged.extend(headers)
        return Response(status=status, headers=tuple(merged), body=body)
