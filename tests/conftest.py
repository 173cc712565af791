"""Pytest configuration and shared fixtures."""
import asyncio
import json
from collections.abc import Callable, Iterable

import httpx
import pytest

from ownai.config import ServerConfig


class ChunkStream(httpx.AsyncByteStream):
    """Response body delivered in caller-chosen chunks.

    A chunk may be an ``asyncio.Event`` (wait for it before continuing) or an
    exception instance (raised at that point of the body).
    """

    def __init__(self, chunks: Iterable[bytes | asyncio.Event | Exception]) -> None:
        self._chunks = list(chunks)

    async def __aiter__(self):
        for chunk in self._chunks:
            if isinstance(chunk, asyncio.Event):
                await chunk.wait()
            elif isinstance(chunk, Exception):
                raise chunk
            else:
                yield chunk

    async def aclose(self) -> None:
        pass


def ndjson(*payloads: dict) -> bytes:
    """Encode payloads as newline-delimited JSON."""
    return b"".join(json.dumps(payload).encode("utf-8") + b"\n" for payload in payloads)


def delta(text: str) -> dict:
    return {"model": "llama2", "message": {"role": "assistant", "content": text}, "done": False}


def done(eval_count: int | None = None, eval_duration: int | None = None) -> dict:
    payload: dict = {"model": "llama2", "done": True}
    if eval_count is not None:
        payload["eval_count"] = eval_count
    if eval_duration is not None:
        payload["eval_duration"] = eval_duration
    return payload


@pytest.fixture
def server_config():
    """Return a valid server configuration with a model selected."""
    return ServerConfig(address="localhost", port=11434, model="llama2")


@pytest.fixture
def chat_transport():
    """Build a MockTransport answering /api/chat with the given chunks.

    Every request is recorded in ``transport.requests``.
    """
    def _build(
        chunks_for: Callable[[int], list] | list,
        status_code: int = 200,
    ) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            chunks = chunks_for(len(requests)) if callable(chunks_for) else chunks_for
            return httpx.Response(status_code, stream=ChunkStream(chunks))

        transport = httpx.MockTransport(handler)
        transport.requests = requests  # type: ignore[attr-defined]
        return transport

    return _build


@pytest.fixture
def ollama_transport():
    """MockTransport serving /api/version and /api/tags like a real server."""
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/version":
            return httpx.Response(200, json={"version": "0.1.2"})
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [
                {"name": "mistral", "size": 4109865159},
                {"name": "llama2", "size": 3826793677},
            ]})
        return httpx.Response(404, json={"error": "not found"})

    return httpx.MockTransport(handler)
