"""Shared fixtures and fakes."""

from __future__ import annotations

import anyio
import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"


class BufferStream:
    """In-memory stand-in for a socket stream: canned input, recorded output."""

    def __init__(self, data: bytes, chunk_size: int = 7):
        self._data = bytearray(data)
        self._chunk_size = chunk_size
        self.sent = bytearray()
        self.receive_calls = 0

    async def receive(self, max_bytes: int = 65536) -> bytes:
        self.receive_calls += 1
        if not self._data:
            raise anyio.EndOfStream
        n = min(max_bytes, self._chunk_size)
        chunk = bytes(self._data[:n])
        del self._data[:n]
        return chunk

    async def send(self, item: bytes) -> None:
        self.sent.extend(item)


class RecordingHandle:
    """
    Fake connection handle that records every call.

    All handles of one exchange share ``log``; each mutator returns a new handle
    and the test can check nobody used a superseded one.
    """

    def __init__(self, fields=None, body: bytes = b"", log=None, generation: int = 0, shared=None):
        self.fields = fields or {}
        self.body = body
        self.log = log if log is not None else []
        self.generation = generation
        self.shared = shared if shared is not None else {"current": 0}

    def _record(self, name, *args):
        self.log.append((name, self.generation, self.generation == self.shared["current"], args))

    def _next(self):
        self.shared["current"] += 1
        return RecordingHandle(self.fields, self.body, self.log, self.shared["current"], self.shared)

    def calls(self, name):
        return [entry for entry in self.log if entry[0] == name]

    @property
    def all_fresh(self) -> bool:
        return all(fresh for _, _, fresh, _ in self.log)

    def method(self):
        self._record("method")
        return self.fields.get("method", "GET")

    def scheme(self):
        self._record("scheme")
        return self.fields.get("scheme", "http")

    def headers(self):
        self._record("headers")
        return list(self.fields.get("headers", []))

    def host(self):
        self._record("host")
        return self.fields.get("host", "example.com")

    def port(self):
        self._record("port")
        return self.fields.get("port")

    def path(self):
        self._record("path")
        return self.fields.get("path", "/")

    def query(self):
        self._record("query")
        return self.fields.get("query", "")

    async def read_body(self):
        self._record("read_body")
        return self.body, self._next()

    def set_cookie(self, name, value, attributes):
        self._record("set_cookie", name, value, dict(attributes))
        return self._next()

    async def reply(self, status, headers, body):
        self._record("reply", status, list(headers), body)
        return self._next()
