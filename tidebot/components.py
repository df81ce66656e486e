"""
Assistant component factory.

Centralises the construction of the engine and its dependencies from
settings, so the CLI commands, the Discord bot and tests wire things up the
same way.
"""

from __future__ import annotations

from tidebot.config.logging import get_logger
from tidebot.config.settings import Settings
from tidebot.engine.assistant import Assistant
from tidebot.llm.base import LLMBackend
from tidebot.llm.litellm_backend import LiteLLMBackend
from tidebot.storage import create_storage
from tidebot.storage.base import ConversationStorage
from tidebot.tools.base import Tool
from tidebot.tools.image_generator import ImageGeneratorTool
from tidebot.tools.local_info import LocalInfoTool
from tidebot.tools.self_info import SelfInfoTool

logger = get_logger(__name__)


class AssistantComponents:
    """
    Factory for building assistant components from settings.

    Example::

        factory = AssistantComponents(settings)
        async with factory.create_storage() as storage:
            assistant = await factory.create_assistant(storage)
            update = await assistant.process_conversation(
                assistant.new_conversation(), UserMessage.from_text("hi")
            )
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def create_llm(self) -> LLMBackend:
        """Create the LiteLLM backend from settings."""
        return LiteLLMBackend(self.settings.llm)

    def create_storage(self) -> ConversationStorage:
        """Create the configured storage backend (not yet initialized)."""
        return create_storage(self.settings.storage)

    def create_tools(self) -> list[Tool]:
        """Create the enabled built-in tools."""
        tool_settings = self.settings.tools
        tools: list[Tool] = []
        if tool_settings.self_info:
            tools.append(SelfInfoTool(bot_name=self.settings.bot.name, model=self.settings.llm.model))
        if tool_settings.local_info:
            tools.append(LocalInfoTool())
        if tool_settings.image_generator:
            tools.append(
                ImageGeneratorTool(
                    model=tool_settings.image_model,
                    api_key=tool_settings.image_api_key or self.settings.llm.api_key,
                )
            )
        return tools

    async def create_assistant(
        self,
        storage: ConversationStorage,
        llm: LLMBackend | None = None,
        tools: list[Tool] | None = None,
    ) -> Assistant:
        """
        Create an Assistant and register tools with it.

        Args:
            storage: Initialized storage backend
            llm: LLM backend (default: create_llm())
            tools: Tools to register (default: create_tools())
        """
        assistant = Assistant(
            settings=self.settings.assistant,
            llm=llm if llm is not None else self.create_llm(),
            storage=storage,
        )
        for tool in tools if tools is not None else self.create_tools():
            await assistant.register_tool(tool)
        names = await assistant.registry.names()
        logger.info(f"Assistant ready with {len(names)} tool(s): {', '.join(names) or 'none'}")
        return assistant
