"""Session list management and persistence.

SessionManager owns the list of sessions and the current-session pointer,
and writes every change through to a SessionStorage backend. It also moves
single sessions in and out of standalone JSON files.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from .base import SessionStorage
from .models import ChatMessage, ChatSession, new_id

logger = logging.getLogger(__name__)


class SessionTransferError(Exception):
    """Raised when exporting or importing a session file fails."""


class SessionManager:
    """Owns the session list and the current selection.

    All operations run on the application's event loop. ``load()`` must be
    awaited before anything else.
    """

    def __init__(self, storage: SessionStorage):
        self._storage = storage
        self._sessions: list[ChatSession] = []
        self._current_id: str | None = None

    @property
    def storage(self) -> SessionStorage:
        return self._storage

    @property
    def sessions(self) -> list[ChatSession]:
        """Sessions in storage order."""
        return list(self._sessions)

    @property
    def current_session_id(self) -> str | None:
        return self._current_id

    @property
    def current_session(self) -> ChatSession | None:
        if self._current_id is None:
            return None
        return self.get(self._current_id)

    def get(self, session_id: str) -> ChatSession | None:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    async def load(self) -> None:
        """Read sessions from storage and pick the current one.

        A dangling current id falls back to the first session. An empty store
        gets a fresh session so there is always something to chat in.
        """
        await self._storage.connect()
        self._sessions = await self._storage.load_sessions()

        for session in self._sessions:
            settled = session.settle_streaming()
            if settled:
                logger.warning(
                    "Session %s had %d unfinished message(s); marked complete",
                    session.id, settled
                )
                await self._storage.save_session(session)

        current_id = await self._storage.load_current_id()
        if current_id is None or self.get(current_id) is None:
            current_id = self._sessions[0].id if self._sessions else None
            await self._storage.save_current_id(current_id)
        self._current_id = current_id

        if not self._sessions:
            await self.create_session()

        logger.debug(
            "Loaded %d session(s) from %s storage",
            len(self._sessions), self._storage.backend_type
        )

    async def create_session(self) -> str:
        """Create an empty session and make it current.

        Returns:
            ID of the new session
        """
        session = ChatSession()
        self._sessions.append(session)
        self._current_id = session.id
        await self._storage.save_session(session)
        await self._storage.save_current_id(session.id)
        return session.id

    async def record_messages(self, session_id: str, messages: list[ChatMessage]) -> None:
        """Replace a session's messages and persist it. Unknown ids are ignored."""
        session = self.get(session_id)
        if session is None:
            logger.debug("record_messages for unknown session %s ignored", session_id)
            return
        session.messages = [message.model_copy() for message in messages]
        await self._storage.save_session(session)

    async def switch_to(self, session_id: str) -> bool:
        """Make a session current.

        Returns:
            True if the session exists
        """
        if self.get(session_id) is None:
            return False
        self._current_id = session_id
        await self._storage.save_current_id(session_id)
        return True

    async def delete(self, session_id: str) -> bool:
        """Remove a session.

        If it was current, the first remaining session becomes current, or
        none when the list is empty.

        Returns:
            True if a session was removed
        """
        session = self.get(session_id)
        if session is None:
            return False
        self._sessions.remove(session)
        await self._storage.delete_session(session_id)

        if self._current_id == session_id:
            self._current_id = self._sessions[0].id if self._sessions else None
            await self._storage.save_current_id(self._current_id)
        return True

    async def rename(self, session_id: str, title: str | None) -> bool:
        """Set a custom title. Blank titles clear it.

        Returns:
            True if the session exists
        """
        session = self.get(session_id)
        if session is None:
            return False
        trimmed = (title or "").strip()
        session.title = trimmed or None
        await self._storage.save_session(session)
        return True

    def export_to_file(self, session_id: str, destination: str | Path) -> Path:
        """Write one session as an indented JSON document.

        Args:
            session_id: Session to export
            destination: Target file path

        Returns:
            The path written

        Raises:
            KeyError: If the session does not exist
            SessionTransferError: If the file cannot be written
        """
        session = self.get(session_id)
        if session is None:
            raise KeyError(session_id)

        path = Path(destination)
        try:
            path.write_text(session.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")
        except OSError as e:
            raise SessionTransferError(f"Could not write {path}: {e}") from e
        logger.debug("Exported session %s to %s", session_id, path)
        return path

    async def import_from_file(self, source: str | Path) -> str:
        """Read a session file, store it under a new id and make it current.

        Returns:
            ID of the imported session

        Raises:
            SessionTransferError: If the file cannot be read, is malformed,
                or cannot be persisted
        """
        path = Path(source)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SessionTransferError(f"Could not read {path}: {e}") from e

        try:
            imported = ChatSession.model_validate_json(raw)
        except ValidationError as e:
            raise SessionTransferError(f"{path} is not a valid session file: {e}") from e

        session = imported.model_copy(update={"id": new_id()})
        session.settle_streaming()

        previous_id = self._current_id
        self._sessions.append(session)
        self._current_id = session.id
        try:
            await self._storage.save_session(session)
            await self._storage.save_current_id(session.id)
        except Exception as e:
            self._sessions.remove(session)
            self._current_id = previous_id
            raise SessionTransferError(f"Could not store imported session: {e}") from e

        logger.debug("Imported %s as session %s", path, session.id)
        return session.id

    async def close(self) -> None:
        await self._storage.disconnect()
