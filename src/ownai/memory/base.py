"""Abstract base class for session storage backends.

This module defines the interface for durable session storage.
The abstraction hides:
- Storage format (JSON documents, SQLite rows)
- Persistence mechanism (database file, in-memory)
- Connection management
"""

from abc import ABC, abstractmethod

from .models import ChatSession


class SessionStorage(ABC):
    """Abstract session storage backend.

    Sessions are written whole (full overwrite) and read back in the order
    they were first saved.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the storage backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the storage backend gracefully."""

    @abstractmethod
    async def load_sessions(self) -> list[ChatSession]:
        """Read all stored sessions. Unreadable entries are skipped."""

    @abstractmethod
    async def save_session(self, session: ChatSession) -> None:
        """Insert or overwrite one session."""

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        """Remove a session; unknown ids are ignored."""

    @abstractmethod
    async def load_current_id(self) -> str | None:
        """Read the stored current-session id (may dangle)."""

    @abstractmethod
    async def save_current_id(self, session_id: str | None) -> None:
        """Store the current-session id, or clear it."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
