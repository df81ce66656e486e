"""
ChatCog: conversations with the assistant via @mention.

A mention starts a new conversation. Replying (with a mention) to one of
the bot's messages continues the conversation that message belongs to:
each bot reply is saved under its own message id, so the replied-to
message id is the key used to restore history.
"""

from __future__ import annotations

import asyncio
import re
import weakref

import discord
from discord.ext import commands

from tidebot.config.logging import get_logger
from tidebot.conversation.messages import ImageUrlContent, TextContent, UserMessage
from tidebot.conversation.models import Attachment, Conversation
from tidebot.errors import EngineError

logger = get_logger(__name__)

PLATFORM_KEY = "discord"

# Leading <@USER_ID> / <@!USER_ID> mention the message was addressed with
_HEAD_MENTION_RE = re.compile(r"^\s*<@!?\d+>\s*")

OMITTED_SUFFIX = "...(omitted)"
MAX_EMBEDS = 10


def _strip_head_mention(text: str) -> str:
    return _HEAD_MENTION_RE.sub("", text, count=1).strip()


def _truncate(text: str, max_length: int) -> str:
    """Cut text to at most max_length characters, marking the cut."""
    if len(text) <= max_length:
        return text
    return text[: max(max_length - len(OMITTED_SUFFIX), 0)] + OMITTED_SUFFIX


def _image_urls(message: discord.Message) -> list[str]:
    return [
        a.url
        for a in message.attachments
        if a.content_type and a.content_type.startswith("image/")
    ]


def _attachment_embeds(attachments: list[Attachment]) -> list[discord.Embed]:
    embeds = []
    for attachment in attachments[:MAX_EMBEDS]:
        embed = discord.Embed(
            description=(attachment.description or "")[:4096] or None,
            color=discord.Color.teal(),
        )
        embed.set_image(url=attachment.url)
        embeds.append(embed)
    return embeds


class ChatCog(commands.Cog):
    """Answers mentions with the assistant, one turn per message."""

    def __init__(self, bot) -> None:
        self.bot = bot
        # Entries disappear once no turn holds or waits on the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, context: str) -> asyncio.Lock:
        lock = self._locks.get(context)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[context] = lock
        return lock

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """
        Respond to @Tidebot mentions.

        Ignores:
        - Messages from bots (including ourselves)
        - Messages that don't mention this bot
        - Messages in non-allowed channels (if restriction is configured)
        """
        if message.author.bot:
            return
        if not self.bot.user.mentioned_in(message):
            return
        if not self.bot.is_allowed_channel(message.channel.id):
            return

        text = _strip_head_mention(message.content)
        image_urls = _image_urls(message)
        if not text and not image_urls:
            await message.reply(f"Yes? (e.g. `@{self.bot.settings.bot.name} What time is it?`)")
            return

        contents: list[TextContent | ImageUrlContent] = []
        if text:
            contents.append(TextContent(text=text))
        contents.extend(ImageUrlContent(url=url) for url in image_urls)
        user_message = UserMessage(contents=tuple(contents), name=message.author.name)

        context = str(message.reference.message_id) if message.reference else None
        logger.info(f"[{message.id}] {message.author.id}: {text!r} ({len(image_urls)} image(s))")

        try:
            if context is None:
                await self._respond(message, None, user_message)
            else:
                async with self._lock_for(context):
                    await self._respond(message, context, user_message)
        except EngineError as e:
            logger.warning(f"Assistant failed for message {message.id} (origin: {e.origin}): {e}")
            await message.reply("Sorry, something went wrong while answering. Please try again.")
        except discord.HTTPException as e:
            logger.error(f"Discord API error replying to message {message.id}: {e}")

    async def _restore(self, context: str | None) -> Conversation:
        assistant = self.bot.assistant
        if context is None:
            logger.info("Creating new conversation")
            return assistant.new_conversation()

        logger.info(f"Restoring conversation with last referenced message ID {context}")
        conversation = await assistant.restore_conversation(PLATFORM_KEY, context)
        if conversation is None:
            logger.info("Conversation not found, creating new one")
            return assistant.new_conversation()
        return conversation

    async def _respond(
        self,
        message: discord.Message,
        context: str | None,
        user_message: UserMessage,
    ) -> None:
        assistant = self.bot.assistant
        conversation = await self._restore(context)

        async with message.channel.typing():
            update = await assistant.process_conversation(conversation, user_message)

        assistant_message = update.assistant_message
        attachments = update.attachments
        logger.info(
            f"Reply [sensitive={assistant_message.is_sensitive}]: "
            f"{assistant_message.text!r} ({len(attachments)} attachment(s))"
        )

        bot_settings = self.bot.settings.bot
        spoiler = assistant_message.is_sensitive and bot_settings.sensitive_spoiler
        # Spoiler bars count toward the limit
        text = _truncate(assistant_message.text, bot_settings.max_length - (4 if spoiler else 0))
        if spoiler:
            text = f"||{text}||"

        reply = await message.reply(text, embeds=_attachment_embeds(attachments))

        await assistant.save_conversation(update.finish(), PLATFORM_KEY, str(reply.id))
