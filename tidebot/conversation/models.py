"""
Conversation containers.

Conversation is the persisted form: an id plus the ordered message history.
It is frozen, so every change produces a new value and a conversation handed
to the engine stays valid for the caller if the turn fails.

IncompleteConversation is the engine's working copy for one turn, and
ConversationUpdate is what a successful turn hands back to a platform
adapter: the reply, any attachments, and a one-shot finish() producing the
conversation to persist.
"""

from __future__ import annotations

from typing import Literal, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from uuid6 import uuid7

from tidebot.conversation.messages import (
    AssistantMessage,
    FunctionCallsMessage,
    FunctionResponseMessage,
    Message,
    SystemMessage,
    UserMessage,
)
from tidebot.errors import ConversationUpdateConsumed


class ImageAttachment(BaseModel):
    """An image produced during a turn, delivered next to the reply text."""

    kind: Literal["image"] = "image"
    url: str
    description: str | None = None

    model_config = ConfigDict(frozen=True)


# Only one attachment variant exists today
Attachment = ImageAttachment


class Conversation(BaseModel):
    """
    A conversation tree node: time-ordered id plus message history.

    Example:
        >>> conversation = Conversation.new(SystemMessage(text="Be nice."))
        >>> len(conversation.messages)
        1
    """

    id: UUID = Field(default_factory=uuid7, description="UUIDv7, ordered by creation time")
    messages: tuple[Message, ...] = ()

    model_config = ConfigDict(frozen=True)

    @classmethod
    def new(cls, system: SystemMessage | None = None) -> Conversation:
        return cls(messages=(system,) if system is not None else ())

    def appended(self, *messages: Message) -> Conversation:
        """Return a copy with ``messages`` added at the end (same id)."""
        return Conversation(id=self.id, messages=(*self.messages, *messages))

    def create_branch(self, taking_messages: int) -> Conversation:
        """Start a new conversation (new id) from the first ``taking_messages`` messages."""
        if not 0 <= taking_messages <= len(self.messages):
            raise ValueError(
                f"cannot take {taking_messages} messages from a conversation of {len(self.messages)}"
            )
        return Conversation(messages=self.messages[:taking_messages])

    def unanswered_calls(self) -> list[str]:
        """Ids of function calls that have no matching response yet."""
        answered = {m.id for m in self.messages if isinstance(m, FunctionResponseMessage)}
        return [
            call.id
            for m in self.messages
            if isinstance(m, FunctionCallsMessage)
            for call in m.calls
            if call.id not in answered
        ]

    def validate_calls(self) -> None:
        """
        Check that every function response answers an earlier function call.

        Raises:
            ValueError: If a response references an unknown call id
        """
        seen: set[str] = set()
        for message in self.messages:
            if isinstance(message, FunctionCallsMessage):
                seen.update(call.id for call in message.calls)
            elif isinstance(message, FunctionResponseMessage) and message.id not in seen:
                raise ValueError(f"function response {message.id!r} has no matching call")


class IncompleteConversation:
    """
    Working copy of a conversation during one turn.

    ``latest_messages`` starts as the stored history plus the new user
    message; the engine appends tool calls and responses to it. It is never
    persisted directly.
    """

    def __init__(self, id: UUID, latest_messages: list[Message]):
        self.id = id
        self.latest_messages = latest_messages

    @classmethod
    def start(cls, conversation: Conversation, user_message: UserMessage) -> IncompleteConversation:
        return cls(conversation.id, [*conversation.messages, user_message])

    def push(self, message: Message) -> None:
        self.latest_messages.append(message)

    def finish(
        self,
        assistant_message: AssistantMessage,
        attachments: Sequence[Attachment] = (),
    ) -> ConversationUpdate:
        conversation = Conversation(id=self.id, messages=tuple(self.latest_messages))
        return ConversationUpdate(conversation, assistant_message, list(attachments))

    def __repr__(self) -> str:
        return f"IncompleteConversation(id={self.id}, messages={len(self.latest_messages)})"


class ConversationUpdate:
    """
    Result of a successful turn.

    Read ``assistant_message`` and ``attachments`` to build the platform
    reply, then call ``finish()`` once to get the conversation to persist.
    A second ``finish()`` raises ConversationUpdateConsumed.
    """

    def __init__(
        self,
        conversation: Conversation,
        assistant_message: AssistantMessage,
        attachments: list[Attachment],
    ):
        self._conversation = conversation
        self._assistant_message = assistant_message
        self._attachments = attachments
        self._finished = False

    @property
    def conversation(self) -> Conversation:
        """The conversation so far, without the final assistant message."""
        return self._conversation

    @property
    def assistant_message(self) -> AssistantMessage:
        return self._assistant_message

    @property
    def attachments(self) -> list[Attachment]:
        return list(self._attachments)

    def finish(self) -> Conversation:
        if self._finished:
            raise ConversationUpdateConsumed("ConversationUpdate.finish() already called")
        self._finished = True
        return self._conversation.appended(self._assistant_message)
