"""
Command-line entry point.

    python -m svcgate myapp:service --port 8080

The service is any callable taking a ``Request`` and returning a ``Response``
(or an awaitable of one).
"""

from __future__ import annotations

import argparse
import importlib
import logging
import os
import sys
from dataclasses import replace
from typing import Sequence

import anyio

from . import __version__
from .adapter import Service
from .config import AdapterConfig
from .errors import ServerStartError
from .log import LOG_LEVELS, setup_logging
from .server import serve


logger = logging.getLogger(__name__)


def load_service(service_path: str) -> Service:
    """
    Load a service from a ``module:attribute`` string.

        "myapp:service" -> from myapp import service
    """
    if ":" not in service_path:
        raise ValueError(
            f"Invalid service path: {service_path!r}. "
            "Expected format: 'module:attribute' (e.g., 'myapp:service')"
        )
    module_path, attr_name = service_path.rsplit(":", 1)

    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ImportError(f"Could not import module '{module_path}': {e}") from e

    try:
        service = getattr(module, attr_name)
    except AttributeError:
        raise AttributeError(f"Module '{module_path}' has no attribute '{attr_name}'") from None

    if not callable(service):
        raise TypeError(f"{service_path!r} is not callable")
    return service


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="svcgate",
        description="Serve a Request -> Response service over HTTP/1.1.",
    )
    parser.add_argument("service", help="service to serve, as module:attribute")
    parser.add_argument("--host", default=None, help="address to bind (default: $SVCGATE_HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="port to bind (default: $SVCGATE_PORT or 8080)")
    parser.add_argument("--log-level", choices=sorted(LOG_LEVELS), default=None, help="logging level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> AdapterConfig:
    """Environment settings, overridden by whatever flags were given."""
    config = AdapterConfig.from_env()
    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.log_level is not None:
        overrides["log_level"] = args.log_level.upper()
    return replace(config, **overrides)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = config_from_args(args)
    setup_logging(config.log_level)

    try:
        config.validate()
        service = load_service(args.service)
    except (ValueError, ImportError, AttributeError, TypeError) as e:
        logger.error("%s", e)
        return 1

    try:
        anyio.run(serve, service, config)
    except ServerStartError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Shutting down")
    return 0
