"""Chat orchestration: prompts in, streamed replies into the current session.

ChatController is the single logical owner of conversation state. It hides:
- How a prompt becomes a user message plus a streaming placeholder
- How stream events are applied to the visible MessageStore
- When the session is written back to storage (after every mutation)
- What happens to an in-flight reply on cancel or session change
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..config import ServerConfig
from ..llm import (
    ChatStream,
    ChatStreamClient,
    OllamaConfigError,
    StreamCompleted,
    StreamDelta,
    StreamFailed,
)
from ..memory import (
    ChangeKind,
    ChatMessage,
    ChatSession,
    MessageStore,
    SessionManager,
    StoreChange,
)

logger = logging.getLogger(__name__)

Listener = Callable[[StoreChange], None]


@dataclass
class _ActiveStream:
    """Bookkeeping for the one reply currently being streamed."""

    stream: ChatStream
    message_id: str
    session_id: str
    store: MessageStore
    task: asyncio.Task | None = None


class ChatController:
    """Sends prompts and keeps the current session's timeline up to date.

    At most one reply streams at a time. Listeners receive every StoreChange
    of the visible store, plus a RESET whenever a different session becomes
    visible.
    """

    def __init__(self, sessions: SessionManager, client: ChatStreamClient):
        self._sessions = sessions
        self._client = client
        self._store = MessageStore()
        self._unsubscribe: Callable[[], None] | None = None
        self._listeners: list[Listener] = []
        self._active: _ActiveStream | None = None
        self._starting = False

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    @property
    def store(self) -> MessageStore:
        """Timeline of the current session."""
        return self._store

    @property
    def current_session(self) -> ChatSession | None:
        return self._sessions.current_session

    @property
    def is_streaming(self) -> bool:
        return self._active is not None or self._starting

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for changes to the visible timeline.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        """Load sessions and show the current one."""
        await self._sessions.load()
        self._rebuild_store()

    async def send(self, prompt: str, config: ServerConfig) -> str:
        """Send a prompt and start streaming the reply.

        History is captured before the prompt is appended, so the prompt is
        sent exactly once as the final user entry.

        Args:
            prompt: User text; surrounding whitespace is trimmed
            config: Settings snapshot used for this request

        Returns:
            ID of the model placeholder message receiving the reply

        Raises:
            ValueError: Empty prompt or no model selected
            RuntimeError: A reply is already streaming
        """
        text = prompt.strip()
        if not text:
            raise ValueError("Prompt is empty")
        if not config.model:
            raise ValueError("No model selected")
        if self._active is not None or self._starting:
            raise RuntimeError("A reply is already streaming")

        self._starting = True
        try:
            return await self._start_reply(text, config)
        finally:
            self._starting = False

    async def _start_reply(self, text: str, config: ServerConfig) -> str:
        session_id = self._sessions.current_session_id
        if session_id is None:
            session_id = await self._sessions.create_session()
            self._rebuild_store()

        store = self._store
        history = store.history()
        placeholder = ChatMessage.placeholder()
        store.append(ChatMessage.from_user(text))
        store.append(placeholder)
        await self._persist(session_id, store)

        try:
            stream = self._client.start(history, text, config)
        except OllamaConfigError as e:
            store.finalize(placeholder.id, error_text=e.message)
            await self._persist(session_id, store)
            return placeholder.id

        active = _ActiveStream(
            stream=stream,
            message_id=placeholder.id,
            session_id=session_id,
            store=store,
        )
        active.task = asyncio.create_task(self._consume(active), name="chat-consume")
        self._active = active
        logger.debug("Streaming reply %s from %s", placeholder.id, config.model)
        return placeholder.id

    async def cancel(self) -> bool:
        """Stop the in-flight reply, keeping whatever was received.

        Returns:
            True if a reply was cancelled
        """
        active = self._active
        if active is None:
            return False
        self._active = None
        active.stream.cancel()
        if active.task is not None:
            try:
                await active.task
            except asyncio.CancelledError:
                pass
        active.store.finalize(active.message_id)
        await self._persist(active.session_id, active.store)
        logger.debug("Reply %s cancelled", active.message_id)
        return True

    async def wait(self) -> None:
        """Wait until the in-flight reply (if any) has finished."""
        active = self._active
        if active is not None and active.task is not None:
            await asyncio.shield(active.task)

    async def new_session(self) -> str:
        await self.cancel()
        session_id = await self._sessions.create_session()
        self._rebuild_store()
        return session_id

    async def switch_session(self, session_id: str) -> bool:
        if session_id == self._sessions.current_session_id:
            return True
        await self.cancel()
        switched = await self._sessions.switch_to(session_id)
        if switched:
            self._rebuild_store()
        return switched

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session; a fresh one is created when none remain.

        A reply streaming into another session keeps running.
        """
        if self._active is not None and self._active.session_id == session_id:
            await self.cancel()
        previous_id = self._sessions.current_session_id
        deleted = await self._sessions.delete(session_id)
        if not deleted:
            return False
        if self._sessions.current_session_id is None:
            await self._sessions.create_session()
        if self._sessions.current_session_id != previous_id:
            self._rebuild_store()
        return True

    async def rename_session(self, session_id: str, title: str | None) -> bool:
        return await self._sessions.rename(session_id, title)

    def export_session(self, session_id: str, destination: str | Path) -> Path:
        return self._sessions.export_to_file(session_id, destination)

    async def import_session(self, source: str | Path) -> str:
        """Import a session file and show it.

        Raises:
            SessionTransferError: If the file is unreadable or malformed
        """
        await self.cancel()
        session_id = await self._sessions.import_from_file(source)
        self._rebuild_store()
        return session_id

    async def close(self) -> None:
        await self.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._sessions.close()
        await self._client.close()

    async def _consume(self, active: _ActiveStream) -> None:
        store = active.store
        try:
            async for event in active.stream:
                if isinstance(event, StreamDelta):
                    store.apply_delta(active.message_id, event.text)
                elif isinstance(event, StreamCompleted):
                    store.finalize(active.message_id, stats=event.stats or None)
                elif isinstance(event, StreamFailed):
                    logger.info("Reply %s failed: %s", active.message_id, event.message)
                    store.finalize(active.message_id, error_text=event.message)
                await self._persist(active.session_id, store)
        finally:
            if self._active is active:
                self._active = None

    async def _persist(self, session_id: str, store: MessageStore) -> None:
        await self._sessions.record_messages(session_id, list(store.messages))

    def _rebuild_store(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        session = self._sessions.current_session
        self._store = MessageStore(session.messages if session is not None else ())
        self._unsubscribe = self._store.subscribe(self._forward)
        self._forward(StoreChange(kind=ChangeKind.RESET))

    def _forward(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            listener(change)
