"""
Storage port: where finished conversations are kept between turns.

A conversation is found either by its id or by a (platform, context) key,
where the context is whatever the platform uses to continue a thread (a
Discord message id, a Mastodon status id, ...). Each conversation id is
mapped to at most one context at a time: upserting under a new context
moves the mapping, so only the latest reply continues the thread.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from uuid import UUID

from tidebot.conversation.models import Conversation


class ConversationStorage(ABC):
    """
    Abstract base class for conversation storage backends.

    All methods raise StorageError (or a subclass) on failure.
    """

    async def initialize(self) -> None:
        """Prepare the backend (open files, create tables). Default: no-op."""
        pass

    async def shutdown(self) -> None:
        """Release backend resources. Default: no-op."""
        pass

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()

    @abstractmethod
    async def find_by_id(self, id: UUID) -> Conversation | None:
        pass

    @abstractmethod
    async def find_by_context(self, platform: str, context: str) -> Conversation | None:
        pass

    @abstractmethod
    async def upsert(self, conversation: Conversation, platform: str, context: str) -> None:
        """
        Store the conversation and map (platform, context) to it.

        Any previous context of the same conversation id is dropped, and any
        other conversation previously mapped to (platform, context) loses
        that mapping.
        """
        pass
