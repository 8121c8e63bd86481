"""Listener configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AdapterConfig:
    """
    Settings for the listener and the connections it hands out.

    Attributes:
        host: Address to bind
        port: Port to bind, 0 picks a free one
        scheme: Scheme reported for origin-form requests ("http" or "https"
            when a TLS terminator sits in front)
        max_header_bytes: Largest accepted request head
        max_body_bytes: Largest accepted Content-Length
        read_timeout: Seconds allowed for reading the head, and again for the body
        server_name: Default ``Server`` response header
        log_level: Level used by ``setup_logging``
    """
    host: str = "127.0.0.1"
    port: int = 8080
    scheme: str = "http"
    max_header_bytes: int = 64 * 1024
    max_body_bytes: int = 1 * 1024 * 1024
    read_timeout: float = 30.0
    server_name: str = "svcgate"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AdapterConfig":
        """
        Build a config from ``SVCGATE_*`` environment variables.

        SVCGATE_HOST, SVCGATE_PORT, SVCGATE_SCHEME, SVCGATE_MAX_HEADER_BYTES,
        SVCGATE_MAX_BODY_BYTES, SVCGATE_READ_TIMEOUT, SVCGATE_LOG_LEVEL
        """
        defaults = cls()
        return cls(
            host=os.getenv("SVCGATE_HOST", defaults.host),
            port=int(os.getenv("SVCGATE_PORT", str(defaults.port))),
            scheme=os.getenv("SVCGATE_SCHEME", defaults.scheme),
            max_header_bytes=int(os.getenv("SVCGATE_MAX_HEADER_BYTES", str(defaults.max_header_bytes))),
            max_body_bytes=int(os.getenv("SVCGATE_MAX_BODY_BYTES", str(defaults.max_body_bytes))),
            read_timeout=float(os.getenv("SVCGATE_READ_TIMEOUT", str(defaults.read_timeout))),
            log_level=os.getenv("SVCGATE_LOG_LEVEL", defaults.log_level),
        )

    def validate(self) -> None:
        """Raise ValueError for settings the listener cannot run with."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.max_header_bytes < 1:
            raise ValueError("max_header_bytes must be >= 1")
        if self.max_body_bytes < 0:
            raise ValueError("max_body_bytes must be >= 0")
        if self.read_timeout <= 0:
            raise ValueError("read_timeout must be > 0")
