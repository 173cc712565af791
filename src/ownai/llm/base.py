"""Shared HTTP plumbing for talking to the model server.

This module hides the HTTP client library and its lifecycle. Subclasses
(probe, catalog, chat stream) only build URLs and decode typed shapes.

Supports the async context manager protocol for resource cleanup:
    async with ConnectionProbe() as probe:
        version = await probe.probe(config)
"""

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .errors import FailureKind, OllamaResponseError, classify_transport_error

logger = logging.getLogger(__name__)

ShapeT = TypeVar("ShapeT", bound=BaseModel)


class OllamaHTTPClient:
    """Owns (or borrows) an ``httpx.AsyncClient``.

    A client passed in by the caller is borrowed and never closed here;
    otherwise one is created lazily and closed by ``close()``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = client
        self._transport = transport
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(transport=self._transport)
        return self._client

    async def get_json(self, url: str, timeout: float, shape: type[ShapeT]) -> ShapeT:
        """GET ``url`` and decode the body into ``shape``.

        Raises:
            OllamaConnectionError: On transport failure
            OllamaResponseError: On non-200 status or undecodable body
        """
        logger.debug("GET %s (timeout %.0fs)", url, timeout)
        try:
            response = await self.client.get(url, timeout=timeout)
        except httpx.TransportError as e:
            raise classify_transport_error(e) from e

        if response.status_code != 200:
            logger.debug("GET %s returned %d: %s", url, response.status_code, response.text[:200])
            raise OllamaResponseError(FailureKind.BAD_STATUS, status_code=response.status_code)

        try:
            return shape.model_validate_json(response.content)
        except ValidationError as e:
            raise OllamaResponseError(FailureKind.MALFORMED_BODY) from e

    async def close(self) -> None:
        """Close the underlying client if this object created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OllamaHTTPClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close on exit.

        Note: Suppresses "Event loop is closed" errors during cleanup, a known
        harmless race in httpx/anyio teardown:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
