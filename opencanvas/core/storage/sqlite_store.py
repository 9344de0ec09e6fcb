"""
SQLite persistent store using aiosqlite.

Each record is stored as one JSON document in a table keyed by ID.
"""

from pathlib import Path

import aiosqlite
from pydantic import ValidationError as PydanticValidationError

from opencanvas.core.storage.base import StorageAdapter
from opencanvas.models.chat import ChatRecord
from opencanvas.models.chunk import VectorStoreRecord
from opencanvas.models.session import CanvasSession, CanvasSnapshot
from opencanvas.utils.exceptions import StoreError
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)

LEGACY_CANVAS_KEY = "current"


class SQLiteStorage(StorageAdapter):
    """
    SQLite-backed persistent store.

    Features:
    - Single local database file
    - JSON documents validated through pydantic on read
    - WAL journal for crash safety
    """

    def __init__(self, db_path: str = "data/opencanvas.db"):
        """
        Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self.connection: aiosqlite.Connection | None = None

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Establish connection to SQLite."""
        if self.connection is None:
            self.connection = await aiosqlite.connect(self.db_path)
            await self.connection.execute("PRAGMA journal_mode = WAL")
            await self.connection.commit()

    async def initialize(self) -> None:
        """Initialize database schema."""
        await self.connect()

        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """
        )
        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS chats (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """
        )
        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS canvas_state (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL
            )
        """
        )
        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS canvas_sessions (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """
        )
        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS vector_stores (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL
            )
        """
        )
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_sessions_updated ON canvas_sessions(updated_at)"
        )
        await self.connection.commit()
        logger.info(f"SQLite store ready at {self.db_path}")

    async def close(self) -> None:
        """Close connection."""
        if self.connection:
            await self.connection.close()
            self.connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self.connection is None:
            raise StoreError("SQLite store is not initialized", context={"db_path": self.db_path})
        return self.connection

    async def _write(self, sql: str, params: tuple) -> None:
        conn = self._require_connection()
        try:
            await conn.execute(sql, params)
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error("SQLite write failed: {}", e, extra={"db_path": self.db_path})
            raise StoreError(f"SQLite write failed: {e}", context={"sql": sql}) from e

    async def _fetch_one(self, sql: str, params: tuple) -> tuple | None:
        conn = self._require_connection()
        async with conn.execute(sql, params) as cursor:
            return await cursor.fetchone()

    async def _fetch_all(self, sql: str, params: tuple = ()) -> list[tuple]:
        conn = self._require_connection()
        async with conn.execute(sql, params) as cursor:
            return list(await cursor.fetchall())

    @staticmethod
    def _decode(model: type, raw: str, record_id: str):
        try:
            return model.model_validate_json(raw)
        except PydanticValidationError as e:
            raise StoreError(
                f"Corrupt {model.__name__} record {record_id}: {e}",
                context={"id": record_id},
            ) from e

    # Settings

    async def get_setting(self, key: str) -> str | None:
        row = await self._fetch_one("SELECT value FROM settings WHERE key = ?", (key,))
        return row[0] if row else None

    async def set_setting(self, key: str, value: str) -> None:
        await self._write(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, value)
        )

    async def delete_setting(self, key: str) -> None:
        await self._write("DELETE FROM settings WHERE key = ?", (key,))

    async def get_all_settings(self) -> dict[str, str]:
        rows = await self._fetch_all("SELECT key, value FROM settings")
        return {key: value for key, value in rows}

    # Chats

    async def save_chat(self, chat: ChatRecord) -> None:
        await self._write(
            "INSERT OR REPLACE INTO chats (id, data, updated_at) VALUES (?, ?, ?)",
            (chat.id, chat.model_dump_json(), chat.updated_at.isoformat()),
        )

    async def get_chat(self, chat_id: str) -> ChatRecord | None:
        row = await self._fetch_one("SELECT data FROM chats WHERE id = ?", (chat_id,))
        return self._decode(ChatRecord, row[0], chat_id) if row else None

    async def get_all_chats(self) -> list[ChatRecord]:
        rows = await self._fetch_all("SELECT id, data FROM chats ORDER BY updated_at DESC")
        return [self._decode(ChatRecord, data, chat_id) for chat_id, data in rows]

    async def delete_chat(self, chat_id: str) -> None:
        await self._write("DELETE FROM chats WHERE id = ?", (chat_id,))

    # Legacy single canvas

    async def save_canvas_state(self, state: CanvasSnapshot) -> None:
        await self._write(
            "INSERT OR REPLACE INTO canvas_state (id, data) VALUES (?, ?)",
            (LEGACY_CANVAS_KEY, state.model_dump_json()),
        )

    async def get_canvas_state(self) -> CanvasSnapshot | None:
        row = await self._fetch_one(
            "SELECT data FROM canvas_state WHERE id = ?", (LEGACY_CANVAS_KEY,)
        )
        return self._decode(CanvasSnapshot, row[0], LEGACY_CANVAS_KEY) if row else None

    async def delete_canvas_state(self) -> None:
        await self._write("DELETE FROM canvas_state WHERE id = ?", (LEGACY_CANVAS_KEY,))

    # Canvas sessions

    async def save_canvas_session(self, session: CanvasSession) -> None:
        await self._write(
            "INSERT OR REPLACE INTO canvas_sessions (id, data, updated_at) VALUES (?, ?, ?)",
            (session.id, session.model_dump_json(), session.updated_at.isoformat()),
        )

    async def get_canvas_session(self, session_id: str) -> CanvasSession | None:
        row = await self._fetch_one(
            "SELECT data FROM canvas_sessions WHERE id = ?", (session_id,)
        )
        return self._decode(CanvasSession, row[0], session_id) if row else None

    async def get_all_canvas_sessions(self) -> list[CanvasSession]:
        rows = await self._fetch_all(
            "SELECT id, data FROM canvas_sessions ORDER BY updated_at DESC"
        )
        return [self._decode(CanvasSession, data, session_id) for session_id, data in rows]

    async def delete_canvas_session(self, session_id: str) -> None:
        await self._write("DELETE FROM canvas_sessions WHERE id = ?", (session_id,))

    # Vector stores

    async def save_vector_store(self, store_id: str, record: VectorStoreRecord) -> None:
        await self._write(
            "INSERT OR REPLACE INTO vector_stores (id, data) VALUES (?, ?)",
            (store_id, record.model_dump_json()),
        )

    async def get_vector_store(self, store_id: str) -> VectorStoreRecord | None:
        row = await self._fetch_one("SELECT data FROM vector_stores WHERE id = ?", (store_id,))
        return self._decode(VectorStoreRecord, row[0], store_id) if row else None

    async def delete_vector_store(self, store_id: str) -> None:
        await self._write("DELETE FROM vector_stores WHERE id = ?", (store_id,))
