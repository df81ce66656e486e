"""
Terminal chat platform.

Reads lines from stdin and answers each one in a single running
conversation. Blocking input() runs in a worker thread so the event loop
stays free while waiting for the user. End the session with EOF (Ctrl-D)
or Ctrl-C.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Callable

from tidebot.config.logging import get_logger
from tidebot.conversation.messages import UserMessage
from tidebot.conversation.models import Conversation, ConversationUpdate
from tidebot.engine.assistant import Assistant
from tidebot.errors import EngineError

logger = get_logger(__name__)

PLATFORM_KEY = "cli"


def _print_error(text: str) -> None:
    print(text, file=sys.stderr)


def format_update(update: ConversationUpdate) -> str:
    """Render a turn's reply (and attachment links) for the terminal."""
    message = update.assistant_message
    lines = [f">> {message.text}"]
    if message.is_sensitive:
        lines[0] += "  [sensitive]"
    for attachment in update.attachments:
        description = f" ({attachment.description})" if attachment.description else ""
        lines.append(f"   [image] {attachment.url}{description}")
    return "\n".join(lines)


class CliPlatform:
    """
    Interactive REPL over one conversation.

    Args:
        assistant: The engine to talk to
        read_line: Blocking line reader (default: input); raises EOFError at end
        write: Output function (default: print)
        write_error: Error output function (default: print to stderr)
    """

    def __init__(
        self,
        assistant: Assistant,
        read_line: Callable[[str], str] = input,
        write: Callable[[str], None] = print,
        write_error: Callable[[str], None] = _print_error,
    ):
        self.assistant = assistant
        self._read_line = read_line
        self._write = write
        self._write_error = write_error
        self.conversation: Conversation = assistant.new_conversation()

    async def ask(self, text: str) -> ConversationUpdate:
        """Run one turn and advance the running conversation."""
        update = await self.assistant.process_conversation(
            self.conversation, UserMessage.from_text(text)
        )
        self.conversation = update.finish()
        await self.assistant.save_conversation(
            self.conversation, PLATFORM_KEY, str(self.conversation.id)
        )
        return update

    async def run(self) -> None:
        """Read-answer loop until EOF."""
        logger.info(f"CLI session started (conversation {self.conversation.id})")
        while True:
            try:
                line = await asyncio.to_thread(self._read_line, "> ")
            except EOFError:
                break

            text = line.strip()
            if not text:
                continue

            logger.debug(f"Sending {text!r}")
            try:
                update = await self.ask(text)
            except EngineError as e:
                logger.debug(f"Turn failed (origin: {e.origin}): {e}")
                self._write_error(f"Error: {e}")
                continue
            self._write(format_update(update))

        logger.info("CLI session ended")
