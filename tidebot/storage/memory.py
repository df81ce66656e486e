"""In-process conversation storage. Contents are lost when the process exits."""

from __future__ import annotations

import asyncio
from uuid import UUID

from tidebot.config.logging import get_logger
from tidebot.conversation.models import Conversation
from tidebot.storage.base import ConversationStorage

logger = get_logger(__name__)

ContextKey = tuple[str, str]


class MemoryConversationStorage(ConversationStorage):
    """Dict-backed storage with a two-way (platform, context) ↔ id map."""

    def __init__(self):
        self._conversations: dict[UUID, Conversation] = {}
        self._by_context: dict[ContextKey, UUID] = {}
        self._by_id: dict[UUID, ContextKey] = {}
        self._lock = asyncio.Lock()

    async def find_by_id(self, id: UUID) -> Conversation | None:
        async with self._lock:
            return self._conversations.get(id)

    async def find_by_context(self, platform: str, context: str) -> Conversation | None:
        async with self._lock:
            conversation_id = self._by_context.get((platform, context))
            if conversation_id is None:
                return None
            return self._conversations.get(conversation_id)

    async def upsert(self, conversation: Conversation, platform: str, context: str) -> None:
        key = (platform, context)
        async with self._lock:
            self._conversations[conversation.id] = conversation

            stale_key = self._by_id.pop(conversation.id, None)
            if stale_key is not None:
                self._by_context.pop(stale_key, None)
            stale_id = self._by_context.pop(key, None)
            if stale_id is not None:
                self._by_id.pop(stale_id, None)

            self._by_context[key] = conversation.id
            self._by_id[conversation.id] = key

        logger.debug(f"Stored conversation {conversation.id} at {platform}/{context}")

