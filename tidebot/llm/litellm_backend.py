"""
LiteLLM backend: the LLM port over any LiteLLM-supported provider.

Translates the provider-agnostic conversation into the OpenAI chat format
LiteLLM speaks, advertises announced tools as function definitions, and maps
the reply back into an LLMUpdate.

Message mapping:
    SystemMessage            → {"role": "system"}
    UserMessage              → {"role": "user"} (text, or text + image_url parts)
    FunctionCallsMessage     → {"role": "assistant", "tool_calls": [...]} (answered calls only)
    FunctionResponseMessage  → {"role": "tool", "tool_call_id": ...}
    AssistantMessage         → {"role": "assistant", "content": text}

Design decisions:
- With structured_output on, the model is asked for a JSON object matching
  ASSISTANT_RESPONSE_SCHEMA so it can report language and sensitivity. A
  reply that is not valid JSON for that schema is a response-format error,
  not something to guess around.
- Tools are always advertised when any are announced. Whether a second
  round of tool calls is honoured is the engine's decision, not ours.
- No retries here. LiteLLM exceptions are mapped once into the LLMError
  family and raised.
"""

from __future__ import annotations

import json
import re
from typing import Any

from litellm import acompletion
from litellm.exceptions import APIConnectionError, Timeout
from pydantic import ValidationError

from tidebot.config.logging import get_logger
from tidebot.config.settings import LLMSettings
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
from tidebot.conversation.models import IncompleteConversation
from tidebot.errors import (
    LLMBackendError,
    LLMCommunicationError,
    LLMNoChoiceError,
    LLMResponseFormatError,
)
from tidebot.llm.base import ASSISTANT_RESPONSE_SCHEMA, AssistantResponse, LLMBackend, LLMUpdate
from tidebot.tools.base import ToolDescriptor
from tidebot.tools.schema import convert_schema

logger = get_logger(__name__)

# OpenAI only accepts this shape for the optional "name" of a user message
_NAME_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _to_chat_message(message: Message) -> dict[str, Any]:
    """Convert one conversation message to an OpenAI-format chat message."""
    if isinstance(message, SystemMessage):
        return {"role": "system", "content": message.text}

    if isinstance(message, UserMessage):
        chat_message: dict[str, Any] = {"role": "user"}
        if all(isinstance(c, TextContent) for c in message.contents):
            chat_message["content"] = message.text
        else:
            parts: list[dict[str, Any]] = []
            for content in message.contents:
                if isinstance(content, ImageUrlContent):
                    parts.append({"type": "image_url", "image_url": {"url": content.url}})
                else:
                    parts.append({"type": "text", "text": content.text})
            chat_message["content"] = parts
        if message.name and _NAME_RE.match(message.name):
            chat_message["name"] = message.name
        return chat_message

    if isinstance(message, FunctionCallsMessage):
        return {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": json.dumps(call.arguments, ensure_ascii=False),
                    },
                }
                for call in message.calls
            ],
        }

    if isinstance(message, FunctionResponseMessage):
        return {
            "role": "tool",
            "tool_call_id": message.id,
            "content": json.dumps(message.result, ensure_ascii=False),
        }

    if isinstance(message, AssistantMessage):
        return {"role": "assistant", "content": message.text}

    raise TypeError(f"Unsupported message type: {type(message).__name__}")


def _to_chat_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """
    Convert a message history, keeping only tool calls that were answered.

    Providers reject an assistant tool_calls entry without a matching tool
    message, and calls to unknown tools are skipped without a response. An
    assistant tool-call message left with no answered calls is dropped.
    """
    answered = {m.id for m in messages if isinstance(m, FunctionResponseMessage)}
    chat_messages = []
    for message in messages:
        if isinstance(message, FunctionCallsMessage):
            calls = tuple(call for call in message.calls if call.id in answered)
            if not calls:
                continue
            message = FunctionCallsMessage(calls=calls)
        chat_messages.append(_to_chat_message(message))
    return chat_messages


def _tool_definition(descriptor: ToolDescriptor) -> dict[str, Any]:
    """Wrap a ToolDescriptor in LiteLLM's (OpenAI) tool format."""
    return {
        "type": "function",
        "function": {
            "name": descriptor.name,
            "description": descriptor.description,
            "parameters": convert_schema(descriptor.parameters),
        },
    }


RESPONSE_FORMAT = {
    "type": "json_schema",
    "json_schema": {
        "name": "response",
        "description": "response from assistant",
        "schema": convert_schema(ASSISTANT_RESPONSE_SCHEMA),
        "strict": True,
    },
}


class LiteLLMBackend(LLMBackend):
    """
    LLM backend calling LiteLLM's acompletion().

    Args:
        settings: LLM configuration (model, api_key, api_base, max_tokens,
                  temperature, structured_output)
    """

    def __init__(self, settings: LLMSettings):
        self._settings = settings
        self._tools: dict[str, ToolDescriptor] = {}

    async def announce_tool(self, descriptor: ToolDescriptor) -> None:
        self._tools[descriptor.name] = descriptor
        logger.debug(f"Tool announced to LLM backend: {descriptor.name}")

    def _build_call_kwargs(self, conversation: IncompleteConversation) -> dict[str, Any]:
        call_kwargs: dict[str, Any] = {
            "model": self._settings.model,
            "messages": _to_chat_messages(conversation.latest_messages),
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
        }
        if self._settings.api_key:
            call_kwargs["api_key"] = self._settings.api_key
        if self._settings.api_base:
            call_kwargs["api_base"] = self._settings.api_base
        if self._tools:
            call_kwargs["tools"] = [_tool_definition(d) for d in self._tools.values()]
        if self._settings.structured_output:
            call_kwargs["response_format"] = RESPONSE_FORMAT
        return call_kwargs

    async def send(self, conversation: IncompleteConversation) -> LLMUpdate:
        call_kwargs = self._build_call_kwargs(conversation)

        try:
            response = await acompletion(**call_kwargs)
        except (APIConnectionError, Timeout) as e:
            raise LLMCommunicationError(f"LLM API call failed: {e}", cause=e) from e
        except Exception as e:
            raise LLMBackendError(f"LLM API call failed: {e}", cause=e) from e

        if not response.choices:
            raise LLMNoChoiceError()
        message = response.choices[0].message

        tool_callings = self._parse_tool_calls(message.tool_calls)
        assistant_response = self._parse_content(message.content)

        logger.debug(
            f"LLM update: response={'yes' if assistant_response else 'no'}, "
            f"tool calls={len(tool_callings) if tool_callings else 0}"
        )
        return LLMUpdate(response=assistant_response, tool_callings=tool_callings)

    @staticmethod
    def _parse_tool_calls(raw_tool_calls: Any) -> list[FunctionCall] | None:
        if not raw_tool_calls:
            return None

        calls = []
        for tool_call in raw_tool_calls:
            raw_arguments = tool_call.function.arguments or "{}"
            try:
                arguments = json.loads(raw_arguments)
            except json.JSONDecodeError as e:
                raise LLMResponseFormatError(
                    f"invalid arguments for tool {tool_call.function.name!r}: {e}", cause=e
                ) from e
            calls.append(
                FunctionCall(id=tool_call.id, name=tool_call.function.name, arguments=arguments)
            )
        return calls

    def _parse_content(self, content: str | None) -> AssistantResponse | None:
        if not content:
            return None
        if not self._settings.structured_output:
            return AssistantResponse(text=content)

        try:
            return AssistantResponse.model_validate_json(content)
        except ValidationError as e:
            raise LLMResponseFormatError(f"invalid response format: {e}", cause=e) from e
