"""SQLite session storage backend.

Provides persistent session storage using a SQLite database file.
Uses aiosqlite for async access. Each session is one JSON document row,
written whole on every change.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
from pydantic import ValidationError

from .base import SessionStorage
from .models import ChatSession

logger = logging.getLogger(__name__)

CURRENT_SESSION_KEY = "current_session"


class SQLiteSessionStorage(SessionStorage):
    """SQLite-backed session storage.

    Rows keep their insertion order across overwrites, which gives a stable
    iteration order for the session list.
    """

    def __init__(self, path: str | Path = "./sessions.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SQLiteSessionStorage is not connected")
        return self._connection

    async def connect(self) -> None:
        """Open the database file and create the schema."""
        if self._connection is not None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._create_schema()
        logger.debug("Session database opened at %s", self._db_path)

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self.connection.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                session_id TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        await self.connection.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)

        await self.connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def load_sessions(self) -> list[ChatSession]:
        async with self.connection.execute(
            "SELECT session_id, payload FROM sessions ORDER BY rowid ASC"
        ) as cursor:
            rows = await cursor.fetchall()

        sessions = []
        for session_id, payload in rows:
            try:
                sessions.append(ChatSession.model_validate_json(payload))
            except ValidationError as e:
                logger.warning("Skipping unreadable session %s: %s", session_id, e)
        return sessions

    async def save_session(self, session: ChatSession) -> None:
        now = datetime.now(timezone.utc).isoformat()
        await self.connection.execute("""
            INSERT INTO sessions (session_id, payload, created_at, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(session_id) DO UPDATE SET
                payload = excluded.payload,
                updated_at = excluded.updated_at
        """, (
            session.id,
            session.model_dump_json(exclude_none=True),
            session.created_at.isoformat(),
            now
        ))
        await self.connection.commit()

    async def delete_session(self, session_id: str) -> None:
        await self.connection.execute(
            "DELETE FROM sessions WHERE session_id = ?",
            (session_id,)
        )
        await self.connection.commit()

    async def load_current_id(self) -> str | None:
        async with self.connection.execute(
            "SELECT value FROM settings WHERE key = ?",
            (CURRENT_SESSION_KEY,)
        ) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else None

    async def save_current_id(self, session_id: str | None) -> None:
        if session_id is None:
            await self.connection.execute(
                "DELETE FROM settings WHERE key = ?",
                (CURRENT_SESSION_KEY,)
            )
        else:
            await self.connection.execute("""
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """, (CURRENT_SESSION_KEY, session_id))
        await self.connection.commit()

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
