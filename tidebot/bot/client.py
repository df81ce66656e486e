"""
TidebotBot: discord.py bot client.

Manages the full bot lifecycle:
- Builds the assistant (LLM backend, storage, tools) once at startup
- Loads the ChatCog that answers mentions
- Cleans up storage and tools on shutdown via AsyncExitStack
"""

from __future__ import annotations

from contextlib import AsyncExitStack

import discord
from discord.ext import commands

from tidebot.components import AssistantComponents
from tidebot.config.logging import get_logger
from tidebot.config.settings import Settings
from tidebot.engine.assistant import Assistant

logger = get_logger(__name__)


class TidebotBot(commands.Bot):
    """
    Discord bot front-end for the assistant.

    Holds the shared Assistant and exposes it to cogs. All async resources
    are managed via AsyncExitStack so they're properly cleaned up when the
    bot shuts down.

    Args:
        settings: Full application settings (bot token, LLM config, storage, tools)
    """

    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        intents.message_content = True  # Required to read message text for mention handling
        super().__init__(
            command_prefix=settings.bot.command_prefix,
            intents=intents,
        )
        self.settings = settings
        self.assistant: Assistant | None = None
        self._exit_stack = AsyncExitStack()

    async def setup_hook(self) -> None:
        """
        Called after login, before connecting to the Gateway.

        Initializes storage and tools, builds the assistant, and loads cogs.
        """
        factory = AssistantComponents(self.settings)

        # --- 1. Storage (kept open for the bot's lifetime) ---
        storage = await self._exit_stack.enter_async_context(factory.create_storage())
        logger.info(f"Storage ready (backend: {self.settings.storage.backend})")

        # --- 2. Tools ---
        tools = [
            await self._exit_stack.enter_async_context(tool)
            for tool in factory.create_tools()
        ]

        # --- 3. Assistant ---
        self.assistant = await factory.create_assistant(storage, tools=tools)
        logger.info(f"Assistant ready (model: {self.settings.llm.model})")

        # --- 4. Load cogs ---
        from tidebot.bot.cogs.chat import ChatCog
        await self.add_cog(ChatCog(self))
        logger.info("Cogs loaded")

    async def on_ready(self) -> None:
        """Called when the bot successfully connects to Discord."""
        logger.info(f"Logged in as {self.user} (id: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

    async def close(self) -> None:
        """Graceful shutdown: clean up all async resources before disconnecting."""
        logger.info(f"Shutting down {self.settings.bot.name}...")
        await self._exit_stack.aclose()
        await super().close()

    def is_allowed_channel(self, channel_id: int) -> bool:
        """
        Return True if the bot should respond in this channel.

        If `allowed_channel_ids` is empty (the default), the bot responds everywhere.
        If it's non-empty, the bot only responds in the listed channel IDs.
        """
        allowed = self.settings.bot.allowed_channel_ids
        return not allowed or channel_id in allowed
