"""
SQLite conversation storage.

Conversations are stored as JSON documents in ``conversations``; the
(platform, context) → conversation mapping lives in ``platform_contexts``.
sqlite3 is blocking, so every statement runs in a worker thread via
asyncio.to_thread(). Each operation opens its own short-lived connection.
"""

from __future__ import annotations

import asyncio
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Callable, TypeVar
from uuid import UUID

from pydantic import ValidationError

from tidebot.config.logging import get_logger
from tidebot.conversation.models import Conversation
from tidebot.errors import StorageBackendError, StorageSerializationError
from tidebot.storage.base import ConversationStorage

logger = get_logger(__name__)

T = TypeVar("T")

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS conversations (
      id TEXT PRIMARY KEY,
      conversation_blob TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS platform_contexts (
      conversation_id TEXT PRIMARY KEY,
      platform TEXT NOT NULL,
      context TEXT NOT NULL,
      UNIQUE (platform, context)
    )
    """,
)


class SqliteConversationStorage(ConversationStorage):
    """
    Persistent storage in a single SQLite file.

    Args:
        db_path: Database file; parent directories are created on initialize().
                 ":memory:" is not supported since every call reconnects.
    """

    def __init__(self, db_path: str | Path = "data/conversations.db"):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=5.0)
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        def _work() -> T:
            with closing(self._connect()) as conn, conn:
                return fn(conn)

        try:
            return await asyncio.to_thread(_work)
        except sqlite3.Error as e:
            raise StorageBackendError(f"SQLite operation failed: {e}", cause=e) from e

    async def initialize(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageBackendError(
                f"Cannot create database directory {self.db_path.parent}: {e}", cause=e
            ) from e

        def _init(conn: sqlite3.Connection) -> None:
            conn.execute("PRAGMA journal_mode=WAL")
            for statement in _SCHEMA:
                conn.execute(statement)

        await self._run(_init)
        logger.info(f"SQLite storage initialized: {self.db_path}")

    @staticmethod
    def _decode(row: tuple[str] | None) -> Conversation | None:
        if row is None:
            return None
        try:
            return Conversation.model_validate_json(row[0])
        except ValidationError as e:
            raise StorageSerializationError(f"stored conversation is invalid: {e}", cause=e) from e

    async def find_by_id(self, id: UUID) -> Conversation | None:
        row = await self._run(
            lambda conn: conn.execute(
                "SELECT conversation_blob FROM conversations WHERE id = ?", (str(id),)
            ).fetchone()
        )
        return self._decode(row)

    async def find_by_context(self, platform: str, context: str) -> Conversation | None:
        row = await self._run(
            lambda conn: conn.execute(
                """
                SELECT c.conversation_blob
                FROM platform_contexts AS pc
                JOIN conversations AS c ON c.id = pc.conversation_id
                WHERE pc.platform = ? AND pc.context = ?
                """,
                (platform, context),
            ).fetchone()
        )
        return self._decode(row)

    async def upsert(self, conversation: Conversation, platform: str, context: str) -> None:
        conversation_id = str(conversation.id)
        blob = conversation.model_dump_json()

        def _write(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO conversations (id, conversation_blob)
                VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET conversation_blob = excluded.conversation_blob
                """,
                (conversation_id, blob),
            )
            conn.execute(
                """
                DELETE FROM platform_contexts
                WHERE conversation_id = ? OR (platform = ? AND context = ?)
                """,
                (conversation_id, platform, context),
            )
            conn.execute(
                "INSERT INTO platform_contexts (conversation_id, platform, context) VALUES (?, ?, ?)",
                (conversation_id, platform, context),
            )

        await self._run(_write)
        logger.debug(f"Stored conversation {conversation_id} at {platform}/{context}")
