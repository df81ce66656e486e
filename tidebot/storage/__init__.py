"""
Conversation storage backends.

    create_storage(settings)
        ├── "memory" → MemoryConversationStorage
        └── "sqlite" → SqliteConversationStorage(settings.sqlite_path)
"""

from tidebot.config.settings import StorageSettings
from tidebot.storage.base import ConversationStorage
from tidebot.storage.memory import MemoryConversationStorage
from tidebot.storage.sqlite import SqliteConversationStorage


def create_storage(settings: StorageSettings) -> ConversationStorage:
    """Build the configured backend. Call initialize() (or use async with) before use."""
    if settings.backend == "sqlite":
        return SqliteConversationStorage(settings.sqlite_path)
    return MemoryConversationStorage()


__all__ = [
    "ConversationStorage",
    "MemoryConversationStorage",
    "SqliteConversationStorage",
    "create_storage",
]
