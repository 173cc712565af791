"""Data models for chat messages and sessions.

These models define the structure of a conversation independent of the
storage backend used. The same JSON schema is used for persistence and for
single-session export files.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from ..content import ContentType, classify

DISPLAY_TITLE_LENGTH = 30
DEFAULT_TITLE = "New Chat"


def new_id() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Sender(str, Enum):
    """Who wrote a message."""

    USER = "user"
    MODEL = "model"


class ChatMessage(BaseModel):
    """A single message in a conversation.

    ``content`` only grows while ``is_streaming`` is true and is frozen once
    the message is finalized. Mutation goes through MessageStore.
    """

    id: str = Field(default_factory=new_id, description="Immutable identity used for in-place updates")
    sender: Sender
    content: str = ""
    content_type: ContentType = Field(default_factory=ContentType.text)
    timestamp: datetime = Field(default_factory=_now)
    stats: str | None = Field(default=None, description="Token count and throughput, set at completion")
    is_streaming: bool = False

    @property
    def role(self) -> str:
        """Role used on the wire: ``user`` or ``assistant``."""
        return "user" if self.sender == Sender.USER else "assistant"

    @classmethod
    def from_user(cls, content: str) -> "ChatMessage":
        """Create a user message with its content type already derived."""
        return cls(sender=Sender.USER, content=content, content_type=classify(content))

    @classmethod
    def placeholder(cls) -> "ChatMessage":
        """Create an empty model message awaiting streamed content."""
        return cls(sender=Sender.MODEL, is_streaming=True)


class ChatSession(BaseModel):
    """An independent, persisted conversation."""

    id: str = Field(default_factory=new_id)
    messages: list[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    title: str | None = Field(default=None, description="User-supplied name; derived when absent")

    @model_validator(mode="after")
    def _unique_message_ids(self) -> "ChatSession":
        seen: set[str] = set()
        for message in self.messages:
            if message.id in seen:
                raise ValueError(f"Duplicate message id: {message.id}")
            seen.add(message.id)
        return self

    @property
    def display_title(self) -> str:
        """Custom title, else a prefix of the first message, else a placeholder."""
        if self.title:
            return self.title
        if self.messages:
            return self.messages[0].content[:DISPLAY_TITLE_LENGTH]
        return DEFAULT_TITLE

    def settle_streaming(self) -> int:
        """Clear streaming flags left behind by an interrupted run.

        Returns:
            Number of messages that were still marked as streaming
        """
        stale = [message for message in self.messages if message.is_streaming]
        for message in stale:
            message.is_streaming = False
        return len(stale)
