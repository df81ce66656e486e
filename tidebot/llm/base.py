"""
LLM port: what the engine needs from a language-model backend.

The engine hands a backend the whole working conversation and gets back an
LLMUpdate: a final assistant response, a list of tool calls, or both. Tools
are announced ahead of time so the backend can advertise them to the model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from tidebot.conversation.messages import FunctionCall
from tidebot.conversation.models import IncompleteConversation
from tidebot.tools.base import ToolDescriptor
from tidebot.tools.schema import SchemaDescriptor

# Structured output the model is asked to produce as the assistant reply
ASSISTANT_RESPONSE_SCHEMA = SchemaDescriptor.object(
    "response",
    "response as assistant",
    [
        SchemaDescriptor.string("text", "Main reply to the user, written in character."),
        SchemaDescriptor.string("language", "IETF BCP 47 language tag of the `text` field."),
        SchemaDescriptor.boolean("sensitive", "Whether the `text` field covers sexual topics."),
    ],
)


class AssistantResponse(BaseModel):
    """Reply content in the assistant role, before sensitivity extraction."""

    text: str
    language: str | None = None
    sensitive: bool | None = Field(
        None, description="Explicit sensitivity flag; None means the model did not say"
    )


class LLMUpdate(BaseModel):
    """What one LLM round-trip produced."""

    response: AssistantResponse | None = None
    tool_callings: list[FunctionCall] | None = None


class LLMBackend(ABC):
    """
    Abstract base class for LLM backends.

    Implementations translate the provider-agnostic conversation into a
    provider request and map failures into the LLMError family.
    """

    @abstractmethod
    async def announce_tool(self, descriptor: ToolDescriptor) -> None:
        """
        Make a tool available to the model from the next request on.

        Re-announcing a name replaces the previous descriptor.
        """
        pass

    @abstractmethod
    async def send(self, conversation: IncompleteConversation) -> LLMUpdate:
        """
        Send the conversation and return the model's update.

        Raises:
            LLMError: On communication, provider or decoding failure
        """
        pass
