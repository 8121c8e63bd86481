"""Exceptions raised by svcgate."""


class SvcgateError(Exception):
    """Base class for svcgate errors."""
    pass


class ServerStartError(SvcgateError):
    """Raised when the listener cannot be bound or started."""
    pass


class ProtocolError(SvcgateError, ValueError):
    """
    Raised when an inbound request head cannot be parsed.

    ``status`` is the HTTP status the listener answers with.
    """

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.status = status


class StaleHandleError(SvcgateError, RuntimeError):
    """Raised when a superseded or finalized connection handle is used again."""
    pass
