"""
Assistant engine: drives one conversational turn.

Flow of process_conversation():

    conversation + user message
            ↓
    IncompleteConversation.start()
            ↓
    LLM send #1 ──(no tool calls)──────────────────┐
            ↓ (tool calls)                          │
    push FunctionCallsMessage                       │
    dispatch each call via ToolRegistry             │
    push one FunctionResponseMessage per result     │
            ↓                                       │
    LLM send #2 (its tool calls are ignored)        │
            ↓ ←─────────────────────────────────────┘
    require a response, extract sensitivity
            ↓
    ConversationUpdate (caller runs finish() and saves)

At most one tool round-trip happens per turn. Nothing is retried: LLM and
tool failures abort the turn as EngineError, and the caller's Conversation
is left exactly as it was passed in.
"""

from __future__ import annotations

from tidebot.config.logging import get_logger
from tidebot.config.settings import AssistantSettings
from tidebot.conversation.messages import (
    AssistantMessage,
    FunctionCall,
    FunctionCallsMessage,
    FunctionResponseMessage,
    SystemMessage,
    UserMessage,
)
from tidebot.conversation.models import (
    Attachment,
    Conversation,
    ConversationUpdate,
    IncompleteConversation,
)
from tidebot.errors import (
    ChatResponseExpected,
    EngineError,
    FunctionError,
    LLMError,
    StorageError,
)
from tidebot.llm.base import AssistantResponse, LLMBackend, LLMUpdate
from tidebot.storage.base import ConversationStorage
from tidebot.tools.base import Tool, ToolDescriptor
from tidebot.tools.registry import ToolRegistry

logger = get_logger(__name__)


def extract_sensitivity(response: AssistantResponse, marker: str) -> tuple[str, bool]:
    """
    Decide whether a reply is sensitive and return its display text.

    An explicit ``sensitive`` flag from the model wins and the text is kept
    verbatim. Otherwise, with a non-empty marker, a reply starting with the
    marker is sensitive and the marker is stripped.

    Examples:
        >>> extract_sensitivity(AssistantResponse(text="[NSFW]hi"), "[NSFW]")
        ('hi', True)
        >>> extract_sensitivity(AssistantResponse(text="[NSFW]hi", sensitive=False), "[NSFW]")
        ('[NSFW]hi', False)
    """
    if response.sensitive is not None:
        return response.text, response.sensitive
    if not marker:
        return response.text, False
    if response.text.startswith(marker):
        return response.text[len(marker):], True
    return response.text, False


class Assistant:
    """
    The orchestration engine.

    Args:
        settings: Assistant identity (system role, sensitive marker)
        llm: LLM backend; registered tools are announced to it
        storage: Conversation storage used by restore/save
        registry: Tool registry (default: a new one announcing to ``llm``)

    Example:
        >>> assistant = Assistant(settings.assistant, llm, storage)
        >>> await assistant.register_tool(LocalInfoTool())
        >>> update = await assistant.process_conversation(
        ...     assistant.new_conversation(), UserMessage.from_text("What time is it?")
        ... )
        >>> await assistant.save_conversation(update.finish(), "cli", "session")
    """

    def __init__(
        self,
        settings: AssistantSettings,
        llm: LLMBackend,
        storage: ConversationStorage,
        registry: ToolRegistry | None = None,
    ):
        self.llm = llm
        self.storage = storage
        self.registry = registry if registry is not None else ToolRegistry(llm.announce_tool)
        self.system_role = settings.resolve_system_role()
        self.sensitive_marker = settings.sensitive_marker

    async def register_tool(self, tool: Tool) -> ToolDescriptor:
        """Make ``tool`` callable by the model. Re-registering a name replaces it."""
        return await self.registry.register(tool)

    def new_conversation(self) -> Conversation:
        """Fresh conversation seeded with the system role (if any)."""
        if not self.system_role:
            return Conversation.new()
        return Conversation.new(SystemMessage(text=self.system_role))

    async def restore_conversation(self, platform: str, context: str) -> Conversation | None:
        try:
            return await self.storage.find_by_context(platform, context)
        except StorageError as e:
            raise EngineError.wrap(e) from e

    async def save_conversation(
        self, conversation: Conversation, platform: str, context: str
    ) -> None:
        try:
            await self.storage.upsert(conversation, platform, context)
        except StorageError as e:
            raise EngineError.wrap(e) from e

    async def process_conversation(
        self,
        conversation: Conversation,
        user_message: UserMessage,
    ) -> ConversationUpdate:
        """
        Run one turn: the user's message in, the assistant's reply out.

        Raises:
            EngineError: LLM or tool failure (see ``origin``)
            ChatResponseExpected: The final LLM update had no response
        """
        incomplete = IncompleteConversation.start(conversation, user_message)
        logger.debug(f"Processing turn for {incomplete!r}")

        try:
            update = await self._send(incomplete)
            attachments: list[Attachment] = []
            if update.tool_callings is not None:
                attachments = await self._process_tool_callings(incomplete, update.tool_callings)
                update = await self._send(incomplete)
                if update.tool_callings:
                    logger.warning(
                        f"Ignoring {len(update.tool_callings)} tool call(s) in the final LLM update"
                    )
        except (LLMError, FunctionError) as e:
            raise EngineError.wrap(e) from e

        if update.response is None:
            raise ChatResponseExpected()

        text, is_sensitive = extract_sensitivity(update.response, self.sensitive_marker)
        assistant_message = AssistantMessage(
            text=text,
            is_sensitive=is_sensitive,
            language=update.response.language,
        )
        return incomplete.finish(assistant_message, attachments)

    async def _send(self, incomplete: IncompleteConversation) -> LLMUpdate:
        return await self.llm.send(incomplete)

    async def _process_tool_callings(
        self,
        incomplete: IncompleteConversation,
        tool_callings: list[FunctionCall],
    ) -> list[Attachment]:
        """Dispatch every call in order, pushing the calls and their responses."""
        incomplete.push(FunctionCallsMessage(calls=tuple(tool_callings)))

        attachments: list[Attachment] = []
        for calling in tool_callings:
            result = await self.registry.dispatch(calling.id, calling.name, calling.arguments)
            if result is None:
                continue
            incomplete.push(
                FunctionResponseMessage(id=calling.id, name=calling.name, result=result.result)
            )
            attachments.extend(result.attachments)
        return attachments
