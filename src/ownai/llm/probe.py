"""Reachability and version check against the model server."""

from ..config import ServerConfig
from .base import OllamaHTTPClient
from .endpoint import VERSION_PATH, build_url
from .models import VersionResponse

PROBE_TIMEOUT = 5.0


class ConnectionProbe(OllamaHTTPClient):
    """Determines whether the server is reachable and which version it runs."""

    timeout: float = PROBE_TIMEOUT

    async def probe(self, config: ServerConfig) -> str:
        """Probe the server.

        Args:
            config: Server settings snapshot

        Returns:
            The server version string

        Raises:
            OllamaConfigError: Invalid address or port (no request is sent)
            OllamaConnectionError: Host not found, refused, timed out, offline
            OllamaResponseError: Non-200 status or malformed body
        """
        url = build_url(config, VERSION_PATH)
        body = await self.get_json(url, self.timeout, VersionResponse)
        return body.version
