"""Server address normalisation.

Turns the user-entered address and port into a request URL, rejecting bad
configuration before any network call is made.
"""

import httpx

from ..config import ServerConfig
from .errors import FailureKind, OllamaConfigError

VERSION_PATH = "/api/version"
TAGS_PATH = "/api/tags"
CHAT_PATH = "/api/chat"

LOOPBACK_IPV4 = "127.0.0.1"
MAX_PORT = 65535


def parse_port(port: str | int) -> int:
    """Validate a port value.

    Raises:
        OllamaConfigError: If the port is not an integer in [1, 65535]
    """
    try:
        value = int(str(port).strip())
    except ValueError:
        raise OllamaConfigError(FailureKind.INVALID_PORT) from None
    if not 1 <= value <= MAX_PORT:
        raise OllamaConfigError(FailureKind.INVALID_PORT)
    return value


def build_url(config: ServerConfig, path: str) -> str:
    """Build the absolute URL for an API path.

    ``localhost`` is replaced by the IPv4 loopback to skip dual-stack
    resolution. An explicit ``http://`` or ``https://`` scheme is kept;
    otherwise plain HTTP is assumed. The configured port always wins over a
    port embedded in the address.

    Args:
        config: Server settings snapshot
        path: API path, e.g. ``/api/version``

    Returns:
        The request URL

    Raises:
        OllamaConfigError: On empty/invalid address or invalid port
    """
    address = config.address.strip()
    if not address:
        raise OllamaConfigError(
            FailureKind.INVALID_ADDRESS, "Server address cannot be empty."
        )
    port = parse_port(config.port)
    if any(ch.isspace() for ch in address):
        raise OllamaConfigError(FailureKind.INVALID_ADDRESS)

    if address.lower() == "localhost":
        address = LOOPBACK_IPV4

    if not address.lower().startswith(("http://", "https://")):
        address = f"http://{address}"

    try:
        url = httpx.URL(address)
        if not url.host:
            raise OllamaConfigError(FailureKind.INVALID_ADDRESS)
        url = url.copy_with(port=port, path=path)
    except httpx.InvalidURL:
        raise OllamaConfigError(FailureKind.INVALID_ADDRESS) from None

    return str(url)
