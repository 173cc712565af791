"""Streaming chat completions over newline-delimited JSON.

Hidden design decisions:
- Byte-level line reassembly independent of transport chunk boundaries
- Structural decoding of each line into delta / done / error shapes
- A background task pushing events into a queue, consumed as an async iterator
- Cancellation that aborts the transport and silences all later events

Usage:
    stream = client.start(history, prompt, config)
    async for event in stream:
        ...
    # or, from anywhere on the loop:
    stream.cancel()
"""

import asyncio
import json
import logging
from collections.abc import Iterable
from typing import Protocol

import httpx
from pydantic import ValidationError

from ..config import ServerConfig
from ..content import ContentType, classify
from .base import OllamaHTTPClient
from .endpoint import CHAT_PATH, build_url
from .errors import classify_transport_error
from .models import (
    ApiMessage,
    ChatRequest,
    DeltaLine,
    DoneLine,
    ErrorLine,
    StreamCompleted,
    StreamDelta,
    StreamEvent,
    StreamFailed,
    StreamState,
)

logger = logging.getLogger(__name__)

STREAM_READ_TIMEOUT = 60.0
STREAM_CONNECT_TIMEOUT = 10.0
NANOSECONDS_PER_SECOND = 1_000_000_000

EOF_BEFORE_DONE = "Connection closed before the response completed"

_END = object()


class HistoryMessage(Protocol):
    """What the client needs from a prior conversation message."""

    @property
    def role(self) -> str: ...

    @property
    def content(self) -> str: ...

    @property
    def is_streaming(self) -> bool: ...


class LineBuffer:
    """Reassembles newline-terminated lines from arbitrary byte chunks.

    Chunk boundaries bear no relation to line boundaries, so bytes are
    accumulated and only complete lines are released, in order.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def feed(self, chunk: bytes) -> list[str]:
        """Append a chunk and return every line it completed."""
        self._buffer.extend(chunk)
        lines: list[str] = []
        while True:
            index = self._buffer.find(b"\n")
            if index < 0:
                break
            raw = bytes(self._buffer[:index])
            del self._buffer[:index + 1]
            line = self._decode(raw)
            if line is not None:
                lines.append(line)
        return lines

    def flush(self) -> list[str]:
        """Release a final unterminated line at end of body."""
        if not self._buffer:
            return []
        raw = bytes(self._buffer)
        self._buffer.clear()
        line = self._decode(raw)
        return [line] if line is not None else []

    @property
    def pending(self) -> int:
        """Number of buffered bytes awaiting a newline."""
        return len(self._buffer)

    @staticmethod
    def _decode(raw: bytes) -> str | None:
        try:
            return raw.decode("utf-8").rstrip("\r")
        except UnicodeDecodeError:
            logger.warning("Skipping undecodable stream line (%d bytes)", len(raw))
            return None


def format_stats(eval_count: int | None, eval_duration: float | None) -> str:
    """Format token count and throughput.

    ``eval_duration`` is in nanoseconds. Either part is omitted when its
    source field is missing.

    Returns:
        e.g. ``"Tokens: 10 | 5.0 tok/s"``, or an empty string
    """
    parts: list[str] = []
    if eval_count is not None:
        parts.append(f"Tokens: {eval_count}")
        if eval_duration is not None and eval_duration > 0:
            rate = eval_count / (eval_duration / NANOSECONDS_PER_SECOND)
            parts.append(f"{rate:.1f} tok/s")
    return " | ".join(parts)


def decode_event(line: str) -> StreamEvent | None:
    """Decode one stream line into an event.

    Returns:
        The event, or None for blank, malformed or unknown lines
    """
    if not line.strip():
        return None
    try:
        payload = json.loads(line)
    except json.JSONDecodeError:
        logger.debug("Ignoring non-JSON stream line: %.80s", line)
        return None
    if not isinstance(payload, dict):
        return None

    try:
        return StreamFailed(message=ErrorLine.model_validate(payload).error)
    except ValidationError:
        pass
    try:
        done = DoneLine.model_validate(payload)
        return StreamCompleted(stats=format_stats(done.eval_count, done.eval_duration))
    except ValidationError:
        pass
    try:
        return StreamDelta(text=DeltaLine.model_validate(payload).message.content)
    except ValidationError:
        pass

    logger.debug("Ignoring unknown stream line: %.80s", line)
    return None


def build_chat_request(
    history: Iterable[HistoryMessage],
    prompt: str,
    config: ServerConfig
) -> ChatRequest:
    """Build the request body; still-streaming messages are left out."""
    messages = [
        ApiMessage(role="user" if message.role == "user" else "assistant", content=message.content)
        for message in history
        if not message.is_streaming
    ]
    messages.append(ApiMessage(role="user", content=prompt))
    return ChatRequest(
        model=config.model,
        messages=messages,
        stream=True,
        options={"num_ctx": config.context_window},
    )


def _error_from_body(body: bytes, status_code: int) -> str:
    """Prefer the server's ``{"error": ...}`` text for non-200 responses."""
    try:
        return ErrorLine.model_validate_json(body).error
    except ValidationError:
        return f"Server returned status {status_code}"


class ChatStream:
    """One streaming chat completion.

    A lazy, finite, non-restartable async iterator of StreamEvent. The
    terminal event (StreamCompleted or StreamFailed) is always the last one;
    after ``cancel()`` no event is delivered at all.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        request: ChatRequest,
        timeout: httpx.Timeout,
    ) -> None:
        self._client = client
        self._url = url
        self._request = request
        self._timeout = timeout
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._state = StreamState.IDLE
        self._cancelled = False
        self._exhausted = False
        self._content = ""
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def model(self) -> str:
        return self._request.model

    @property
    def content(self) -> str:
        """All delta text received so far."""
        return self._content

    @property
    def content_type(self) -> ContentType:
        """Live classification of the accumulated content."""
        return classify(self._content)

    def start(self) -> None:
        """Issue the request on a background task. Requires a running loop."""
        if self._state != StreamState.IDLE:
            raise RuntimeError("ChatStream can only be started once")
        self._state = StreamState.REQUESTING
        self._task = asyncio.create_task(self._run(), name=f"chat-stream-{self._request.model}")

    def cancel(self) -> None:
        """Abort the transport; no further events are delivered."""
        if self._cancelled:
            return
        self._cancelled = True
        if not self._state.is_terminal:
            self._state = StreamState.CANCELLED
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._queue.put_nowait(_END)
        logger.debug("Chat stream cancelled (model=%s)", self.model)

    async def aclose(self) -> None:
        """Cancel and wait until the transport has been released."""
        self.cancel()
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def __aiter__(self) -> "ChatStream":
        return self

    async def __anext__(self) -> StreamEvent:
        if self._exhausted or self._cancelled:
            self._exhausted = True
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END or self._cancelled:
            self._exhausted = True
            raise StopAsyncIteration
        return item  # type: ignore[return-value]

    def _emit(self, event: StreamEvent) -> None:
        if not self._cancelled:
            self._queue.put_nowait(event)

    def _finish(self, event: StreamCompleted | StreamFailed) -> None:
        if self._cancelled or self._state.is_terminal:
            return
        self._state = (
            StreamState.COMPLETED if isinstance(event, StreamCompleted) else StreamState.FAILED
        )
        self._emit(event)
        self._queue.put_nowait(_END)

    def _handle_line(self, line: str) -> bool:
        """Process one framed line; returns True once a terminal event is emitted."""
        event = decode_event(line)
        if event is None:
            return False
        if isinstance(event, StreamDelta):
            self._content += event.text
            self._emit(event)
            return False
        self._finish(event)
        return True

    async def _run(self) -> None:
        logger.debug("POST %s (model=%s, %d messages)", self._url, self.model, len(self._request.messages))
        try:
            async with self._client.stream(
                "POST",
                self._url,
                json=self._request.model_dump(),
                timeout=self._timeout,
            ) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    self._finish(StreamFailed(message=_error_from_body(body, response.status_code)))
                    return

                buffer = LineBuffer()
                async for chunk in response.aiter_bytes():
                    if self._state == StreamState.REQUESTING:
                        self._state = StreamState.STREAMING
                    for line in buffer.feed(chunk):
                        if self._handle_line(line):
                            return
                for line in buffer.flush():
                    if self._handle_line(line):
                        return

            self._finish(StreamFailed(message=EOF_BEFORE_DONE))
        except httpx.TransportError as e:
            self._finish(StreamFailed(message=classify_transport_error(e).message))
        except httpx.HTTPError as e:
            self._finish(StreamFailed(message=str(e) or type(e).__name__))
        except Exception as e:
            logger.exception("Unexpected failure in chat stream")
            self._finish(StreamFailed(message=str(e) or type(e).__name__))


class ChatStreamClient(OllamaHTTPClient):
    """Starts streaming chat completions against ``/api/chat``.

    There is no overall timeout; an idle connection surfaces as a read
    timeout, i.e. a transport failure. No automatic retry.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        read_timeout: float = STREAM_READ_TIMEOUT,
    ) -> None:
        super().__init__(client=client, transport=transport)
        self._read_timeout = read_timeout

    def start(
        self,
        history: Iterable[HistoryMessage],
        prompt: str,
        config: ServerConfig
    ) -> ChatStream:
        """Open a stream for ``prompt`` following ``history``.

        Args:
            history: Prior messages; still-streaming ones are skipped
            prompt: New user prompt, sent as the final user entry
            config: Settings snapshot; captured for the life of the request

        Returns:
            A started ChatStream

        Raises:
            OllamaConfigError: Invalid address or port (reported synchronously)
        """
        url = build_url(config, CHAT_PATH)
        request = build_chat_request(history, prompt, config)
        timeout = httpx.Timeout(
            STREAM_CONNECT_TIMEOUT,
            read=self._read_timeout,
        )
        stream = ChatStream(self.client, url, request, timeout)
        stream.start()
        return stream
