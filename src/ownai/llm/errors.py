"""Error taxonomy for talking to the model server.

Every failure the probe, the catalog or the chat stream can hit maps to one
FailureKind with a user-facing message. Transport exceptions from httpx are
classified here so callers never inspect socket errors themselves.
"""

import errno
import socket
from enum import Enum

import httpx


class FailureKind(str, Enum):
    """User-facing failure categories."""

    INVALID_PORT = "invalid_port"
    INVALID_ADDRESS = "invalid_address"
    HOST_NOT_FOUND = "host_not_found"
    CONNECTION_REFUSED = "connection_refused"
    TIMED_OUT = "timed_out"
    NOT_CONNECTED = "not_connected"
    BAD_STATUS = "bad_status"
    MALFORMED_BODY = "malformed_body"
    TRANSPORT = "transport"


_MESSAGES = {
    FailureKind.INVALID_PORT: "Invalid port number.",
    FailureKind.INVALID_ADDRESS: (
        "Invalid server address format. Ensure it's a valid hostname or IP, "
        "optionally prefixed with http:// or https://."
    ),
    FailureKind.HOST_NOT_FOUND: "Cannot find the server. Verify the address.",
    FailureKind.CONNECTION_REFUSED: "Connection refused by server. Ensure Ollama is running and listening.",
    FailureKind.TIMED_OUT: "Connection timed out. Check server responsiveness and network.",
    FailureKind.NOT_CONNECTED: "Not connected to the network. Please check your network.",
    FailureKind.MALFORMED_BODY: "Could not decode the server response.",
}

_NOT_CONNECTED_ERRNOS = {errno.ENETUNREACH, errno.ENETDOWN, errno.EHOSTUNREACH}

_HOST_NOT_FOUND_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "no address associated",
    "temporary failure in name resolution",
    "getaddrinfo failed",
)


class OllamaError(Exception):
    """Base class for model server errors."""

    def __init__(self, kind: FailureKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = message or _MESSAGES.get(kind, kind.value)
        super().__init__(self.message)


class OllamaConfigError(OllamaError):
    """Configuration rejected before any network call."""


class OllamaConnectionError(OllamaError):
    """The server could not be reached."""


class OllamaResponseError(OllamaError):
    """The server answered, but not with what was expected."""

    def __init__(
        self,
        kind: FailureKind,
        message: str | None = None,
        status_code: int | None = None
    ) -> None:
        self.status_code = status_code
        if message is None and kind == FailureKind.BAD_STATUS:
            message = f"Server returned status {status_code}"
        super().__init__(kind, message)


def _iter_causes(exc: BaseException):
    """Walk the exception chain (cause first, then context)."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def classify_transport_error(exc: httpx.TransportError) -> OllamaConnectionError:
    """Map an httpx transport exception to a categorized connection error.

    Args:
        exc: The exception raised by httpx

    Returns:
        OllamaConnectionError carrying the matching FailureKind
    """
    if isinstance(exc, httpx.TimeoutException):
        return OllamaConnectionError(FailureKind.TIMED_OUT)

    for cause in _iter_causes(exc):
        if isinstance(cause, socket.gaierror):
            return OllamaConnectionError(FailureKind.HOST_NOT_FOUND)
        if isinstance(cause, ConnectionRefusedError):
            return OllamaConnectionError(FailureKind.CONNECTION_REFUSED)
        if isinstance(cause, OSError) and cause.errno in _NOT_CONNECTED_ERRNOS:
            return OllamaConnectionError(FailureKind.NOT_CONNECTED)

    # httpcore often flattens the OSError into its message
    text = str(exc).lower()
    if any(hint in text for hint in _HOST_NOT_FOUND_HINTS):
        return OllamaConnectionError(FailureKind.HOST_NOT_FOUND)
    if "connection refused" in text:
        return OllamaConnectionError(FailureKind.CONNECTION_REFUSED)
    if "network is unreachable" in text or "network is down" in text:
        return OllamaConnectionError(FailureKind.NOT_CONNECTED)

    detail = str(exc) or type(exc).__name__
    return OllamaConnectionError(FailureKind.TRANSPORT, detail)
