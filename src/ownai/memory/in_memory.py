"""In-memory session storage backend.

Keeps serialized session documents in a dict. Data is lost when the
application exits; suitable for ephemeral use and testing.
"""

import logging

from pydantic import ValidationError

from .base import SessionStorage
from .models import ChatSession

logger = logging.getLogger(__name__)


class InMemorySessionStorage(SessionStorage):
    """Session storage held in process memory.

    Sessions are stored as JSON documents rather than live objects so reads
    go through the same schema as the durable backend.
    """

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}
        self._current_id: str | None = None

    async def connect(self) -> None:
        """Initialize storage (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close storage (no-op for in-memory)."""
        pass

    async def load_sessions(self) -> list[ChatSession]:
        sessions = []
        for session_id, document in self._documents.items():
            try:
                sessions.append(ChatSession.model_validate_json(document))
            except ValidationError as e:
                logger.warning("Skipping unreadable session %s: %s", session_id, e)
        return sessions

    async def save_session(self, session: ChatSession) -> None:
        self._documents[session.id] = session.model_dump_json(exclude_none=True)

    async def delete_session(self, session_id: str) -> None:
        self._documents.pop(session_id, None)

    async def load_current_id(self) -> str | None:
        return self._current_id

    async def save_current_id(self, session_id: str | None) -> None:
        self._current_id = session_id

    @property
    def backend_type(self) -> str:
        return "memory"
