"""
Conversation Model.

Messages, conversations and the per-turn working values the engine uses.
"""

from tidebot.conversation.messages import (
    AssistantMessage,
    FunctionCall,
    FunctionCallsMessage,
    FunctionResponseMessage,
    ImageUrlContent,
    Message,
    SystemMessage,
    TextContent,
    UserMessage,
)
from tidebot.conversation.models import (
    Attachment,
    Conversation,
    ConversationUpdate,
    ImageAttachment,
    IncompleteConversation,
)

__all__ = [
    "AssistantMessage",
    "Attachment",
    "Conversation",
    "ConversationUpdate",
    "FunctionCall",
    "FunctionCallsMessage",
    "FunctionResponseMessage",
    "ImageAttachment",
    "ImageUrlContent",
    "IncompleteConversation",
    "Message",
    "SystemMessage",
    "TextContent",
    "UserMessage",
]
