"""Conversation state: message timeline, sessions and their storage.

This package provides:
- ChatMessage / ChatSession data models
- MessageStore, the mutable timeline of the visible session
- SessionManager, the session list with write-through persistence
- Pluggable storage backends (in-memory, SQLite)
"""

from .base import SessionStorage
from .factory import create_session_storage
from .in_memory import InMemorySessionStorage
from .manager import SessionManager, SessionTransferError
from .models import DEFAULT_TITLE, ChatMessage, ChatSession, Sender
from .sqlite import SQLiteSessionStorage
from .store import ChangeKind, MessageStore, StoreChange

__all__ = [
    "ChangeKind",
    "ChatMessage",
    "ChatSession",
    "DEFAULT_TITLE",
    "InMemorySessionStorage",
    "MessageStore",
    "SQLiteSessionStorage",
    "Sender",
    "SessionManager",
    "SessionStorage",
    "SessionTransferError",
    "StoreChange",
    "create_session_storage",
]
