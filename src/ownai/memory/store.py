"""Ordered, mutable message timeline for one session.

The store is the only place message content changes. It exposes a narrow
mutation API (append, apply_delta, finalize) plus a subscription hook for
observers. It is owned by a single asyncio loop and is not thread-safe:
callbacks from other threads must be marshalled onto the loop first.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from ..content import ContentType, classify
from .models import ChatMessage

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Error: "


class ChangeKind(str, Enum):
    APPENDED = "appended"
    UPDATED = "updated"
    FINALIZED = "finalized"
    RESET = "reset"


@dataclass(frozen=True)
class StoreChange:
    """Notification sent to subscribers after each mutation."""

    kind: ChangeKind
    message_id: str | None = None


Listener = Callable[[StoreChange], None]


class MessageStore:
    """Message timeline with identity-based incremental updates."""

    def __init__(self, messages: Iterable[ChatMessage] = ()) -> None:
        self._messages: list[ChatMessage] = []
        self._index: dict[str, ChatMessage] = {}
        self._listeners: list[Listener] = []
        for message in messages:
            self._insert(message.model_copy())

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        """Snapshot of the timeline; mutating it does not affect the store."""
        return tuple(message.model_copy() for message in self._messages)

    def get(self, message_id: str) -> ChatMessage | None:
        message = self._index.get(message_id)
        return message.model_copy() if message is not None else None

    def history(self) -> list[ChatMessage]:
        """Finalized messages in order, suitable as request history."""
        return [message.model_copy() for message in self._messages if not message.is_streaming]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def append(self, message: ChatMessage) -> None:
        """Add a message at the end.

        Raises:
            ValueError: If a message with the same id already exists
        """
        self._insert(message.model_copy())
        self._notify(ChangeKind.APPENDED, message.id)

    def apply_delta(self, message_id: str, text: str) -> bool:
        """Append streamed text to a message and reclassify it.

        Missing ids and finalized messages are ignored; late events after a
        session switch are expected.

        Returns:
            True if the message was updated
        """
        message = self._index.get(message_id)
        if message is None:
            logger.debug("Delta for unknown message %s ignored", message_id)
            return False
        if not message.is_streaming:
            logger.debug("Delta for finalized message %s ignored", message_id)
            return False
        message.content += text
        message.content_type = classify(message.content)
        self._notify(ChangeKind.UPDATED, message_id)
        return True

    def finalize(
        self,
        message_id: str,
        stats: str | None = None,
        error_text: str | None = None
    ) -> bool:
        """End streaming for a message.

        An error replaces whatever content was streamed so far. Messages that
        are missing or already finalized are left untouched.

        Returns:
            True if this call finalized the message
        """
        message = self._index.get(message_id)
        if message is None or not message.is_streaming:
            return False
        if error_text is not None:
            message.content = f"{ERROR_PREFIX}{error_text}"
            message.content_type = ContentType.text()
            message.stats = None
        else:
            if stats is not None:
                message.stats = stats
            message.content_type = classify(message.content)
        message.is_streaming = False
        self._notify(ChangeKind.FINALIZED, message_id)
        return True

    def _insert(self, message: ChatMessage) -> None:
        if message.id in self._index:
            raise ValueError(f"Duplicate message id: {message.id}")
        self._messages.append(message)
        self._index[message.id] = message

    def _notify(self, kind: ChangeKind, message_id: str | None) -> None:
        change = StoreChange(kind=kind, message_id=message_id)
        for listener in list(self._listeners):
            listener(change)
