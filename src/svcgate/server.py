"""TCP listener that feeds connections to a service through the adapter.

Each accepted connection is served in its own task of the caller's TaskGroup:
the request head is parsed into a ``Connection``, the ``ServiceAdapter``
extracts, calls the service and dispatches, and the stream is closed.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import replace
from typing import Any

import anyio
from anyio.abc import ByteStream, SocketAttribute, TaskGroup

from .adapter import Service, ServiceAdapter
from .config import AdapterConfig
from .errors import ProtocolError, ServerStartError, StaleHandleError
from .http.connection import Connection, write_error


logger = logging.getLogger(__name__)


class HttpListener:
    """
    A bound listener serving one service.

    Created by ``start()``; ``port`` is the port actually bound (useful when
    the configured port is 0).
    """

    def __init__(self, listener: Any, adapter: ServiceAdapter, config: AdapterConfig):
        # anyio.create_tcp_listener() returns a MultiListener; kept loosely typed.
        self._listener = listener
        self._adapter = adapter
        self._config = config
        self._cancel_scope = anyio.CancelScope()
        self._serving = False

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        return self._listener.extra(SocketAttribute.local_port)

    @property
    def config(self) -> AdapterConfig:
        return self._config

    async def serve(self, *, task_group: TaskGroup | None = None) -> None:
        """Accept connections until ``aclose()`` is called or the scope is cancelled."""
        self._serving = True
        with self._cancel_scope:
            async with self._listener:
                await self._listener.serve(self._handle_client, task_group=task_group)

    async def aclose(self) -> None:
        self._cancel_scope.cancel()
        if not self._serving:
            await self._listener.aclose()

    async def _handle_client(self, stream: ByteStream) -> None:
        async with stream:
            try:
                with anyio.fail_after(self._config.read_timeout):
                    conn = await Connection.open(stream, self._config)
            except ProtocolError as e:
                logger.warning("rejecting request: %s", e)
                await self._answer_error(stream, e.status, str(e))
                return
            except TimeoutError:
                logger.debug("timed out reading request head")
                return
            except (anyio.EndOfStream, anyio.BrokenResourceError):
                return

            try:
                await self._adapter(conn)
            except StaleHandleError:
                raise
            except (TimeoutError, anyio.EndOfStream, anyio.BrokenResourceError, anyio.ClosedResourceError):
                logger.debug("connection dropped before reply")
            except Exception:
                logger.exception("unhandled error while serving connection")
                if not conn.finalized:
                    await self._answer_error(stream, 500, "internal server error")

    async def _answer_error(self, stream: ByteStream, status: int, message: str) -> None:
        try:
            await write_error(stream, status, message, self._config.server_name)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            pass


async def start(
    service: Service,
    port: int | None = None,
    *,
    task_group: TaskGroup,
    host: str | None = None,
    config: AdapterConfig | None = None,
) -> HttpListener:
    """
    Bind a listener and start serving ``service`` in ``task_group``.

    ``port`` and ``host`` override the matching ``config`` fields. Raises
    ``ServerStartError`` if the port cannot be bound.
    """
    config = config or AdapterConfig()
    if port is not None:
        config = replace(config, port=port)
    if host is not None:
        config = replace(config, host=host)
    config.validate()

    try:
        listener = await anyio.create_tcp_listener(local_host=config.host, local_port=config.port)
    except OSError as e:
        raise ServerStartError(f"cannot listen on {config.host}:{config.port}: {e}") from e

    http_listener = HttpListener(listener, ServiceAdapter(service), config)
    task_group.start_soon(functools.partial(http_listener.serve, task_group=task_group))
    logger.info("Listening on %s://%s:%d", config.scheme, config.host, http_listener.port)
    return http_listener


async def serve(service: Service, config: AdapterConfig | None = None) -> None:
    """Start a listener for ``service`` and serve until cancelled."""
    async with anyio.create_task_group() as tg:
        await start(service, task_group=tg, config=config)
