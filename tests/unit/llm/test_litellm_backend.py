"""
Unit tests for LiteLLMBackend.

Tests cover:
- Conversion of every message variant to the OpenAI chat format
- Tool advertisement and structured-output request parameters
- Parsing of text, structured and tool-call replies
- Mapping of LiteLLM failures into the LLMError family

LiteLLM's acompletion() is patched; no API key or network is needed.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import litellm
import pytest

from tidebot.config.settings import LLMSettings
from tidebot.conversation.messages import (
    AssistantMessage,
    FunctionCall,
    FunctionCallsMessage,
    FunctionResponseMessage,
    SystemMessage,
    UserMessage,
)
from tidebot.conversation.models import Conversation, IncompleteConversation
from tidebot.errors import (
    LLMBackendError,
    LLMCommunicationError,
    LLMNoChoiceError,
    LLMResponseFormatError,
)
from tidebot.llm.litellm_backend import LiteLLMBackend
from tidebot.tools.base import ToolDescriptor
from tidebot.tools.schema import SchemaDescriptor


# ---------------------------------------------------------------------------
# Helpers for building mock LiteLLM responses
# ---------------------------------------------------------------------------

def _make_text_response(content: str | None) -> MagicMock:
    """Build a mock LiteLLM response with message content and no tool calls."""
    choice = MagicMock()
    choice.message.content = content
    choice.message.tool_calls = None

    response = MagicMock()
    response.choices = [choice]
    return response


def _make_tool_call_response(
    tool_name: str,
    arguments: str,
    tool_call_id: str = "call_123",
) -> MagicMock:
    """Build a mock LiteLLM response that requests a tool call."""
    tool_call = MagicMock()
    tool_call.id = tool_call_id
    tool_call.function.name = tool_name
    tool_call.function.arguments = arguments

    choice = MagicMock()
    choice.message.content = None
    choice.message.tool_calls = [tool_call]

    response = MagicMock()
    response.choices = [choice]
    return response


def _incomplete(*messages) -> IncompleteConversation:
    return IncompleteConversation(Conversation.new().id, list(messages))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return LLMSettings(
        model="openai/gpt-4o-mini",
        max_tokens=512,
        temperature=0.3,
        api_key="test-api-key",
    )


@pytest.fixture
def backend(settings):
    return LiteLLMBackend(settings)


@pytest.fixture
def plain_backend(settings):
    return LiteLLMBackend(settings.model_copy(update={"structured_output": False}))


def _time_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="get_time",
        description="Current time",
        parameters=SchemaDescriptor.object(
            "parameters", "arguments", [SchemaDescriptor.string("tz", "timezone")]
        ),
    )


# ---------------------------------------------------------------------------
# Test Classes
# ---------------------------------------------------------------------------

class TestRequest:
    @pytest.mark.asyncio
    async def test_basic_call_kwargs(self, backend):
        reply = json.dumps({"text": "hi", "language": "en", "sensitive": False})
        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_text_response(reply)),
        ) as mock_completion:
            await backend.send(_incomplete(UserMessage.from_text("hello")))

        kwargs = mock_completion.await_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o-mini"
        assert kwargs["max_tokens"] == 512
        assert kwargs["temperature"] == 0.3
        assert kwargs["api_key"] == "test-api-key"
        assert "api_base" not in kwargs
        assert "tools" not in kwargs
        assert kwargs["response_format"]["type"] == "json_schema"
        schema = kwargs["response_format"]["json_schema"]["schema"]
        assert schema["required"] == ["text", "language", "sensitive"]

    @pytest.mark.asyncio
    async def test_announced_tools_are_advertised(self, backend):
        await backend.announce_tool(_time_tool())
        await backend.announce_tool(_time_tool())

        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_text_response(None)),
        ) as mock_completion:
            await backend.send(_incomplete(UserMessage.from_text("hello")))

        tools = mock_completion.await_args.kwargs["tools"]
        assert len(tools) == 1
        assert tools[0]["type"] == "function"
        assert tools[0]["function"]["name"] == "get_time"
        assert tools[0]["function"]["parameters"]["required"] == ["tz"]

    @pytest.mark.asyncio
    async def test_plain_mode_omits_response_format(self, plain_backend):
        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_text_response("hi")),
        ) as mock_completion:
            await plain_backend.send(_incomplete(UserMessage.from_text("hello")))

        assert "response_format" not in mock_completion.await_args.kwargs

    @pytest.mark.asyncio
    async def test_message_conversion(self, backend):
        conversation = _incomplete(
            SystemMessage(text="Be nice."),
            UserMessage.from_text("draw a cat", name="alice", image_urls=["https://img/ref.png"]),
            FunctionCallsMessage(
                calls=(FunctionCall(id="call_1", name="image_generator", arguments={"prompt": "cat"}),)
            ),
            FunctionResponseMessage(id="call_1", name="image_generator", result={"image_url": "u"}),
            AssistantMessage(text="Here you go"),
            UserMessage.from_text("thanks", name="not a valid name!"),
        )

        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_text_response(None)),
        ) as mock_completion:
            await backend.send(conversation)

        messages = mock_completion.await_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "Be nice."}
        assert messages[1] == {
            "role": "user",
            "content": [
                {"type": "text", "text": "draw a cat"},
                {"type": "image_url", "image_url": {"url": "https://img/ref.png"}},
            ],
            "name": "alice",
        }
        assert messages[2]["role"] == "assistant"
        assert messages[2]["tool_calls"][0]["id"] == "call_1"
        assert json.loads(messages[2]["tool_calls"][0]["function"]["arguments"]) == {"prompt": "cat"}
        assert messages[3] == {
            "role": "tool",
            "tool_call_id": "call_1",
            "content": json.dumps({"image_url": "u"}),
        }
        assert messages[4] == {"role": "assistant", "content": "Here you go"}
        assert messages[5] == {"role": "user", "content": "thanks"}

    @pytest.mark.asyncio
    async def test_unanswered_tool_calls_are_not_sent(self, backend):
        """Calls skipped by the engine (unknown tools) have no tool message to pair with."""
        conversation = _incomplete(
            UserMessage.from_text("what time is it?"),
            FunctionCallsMessage(
                calls=(
                    FunctionCall(id="1", name="missing"),
                    FunctionCall(id="2", name="local_info"),
                )
            ),
            FunctionResponseMessage(id="2", name="local_info", result={"time_now": "12:00"}),
        )

        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_text_response(None)),
        ) as mock_completion:
            await backend.send(conversation)

        messages = mock_completion.await_args.kwargs["messages"]
        assert [m["role"] for m in messages] == ["user", "assistant", "tool"]
        asked = {call["id"] for call in messages[1]["tool_calls"]}
        answered = {m["tool_call_id"] for m in messages if m["role"] == "tool"}
        assert asked == answered == {"2"}

    @pytest.mark.asyncio
    async def test_tool_call_message_dropped_when_nothing_answered(self, backend):
        conversation = _incomplete(
            UserMessage.from_text("draw a cat"),
            FunctionCallsMessage(calls=(FunctionCall(id="1", name="missing"),)),
        )

        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_text_response(None)),
        ) as mock_completion:
            await backend.send(conversation)

        messages = mock_completion.await_args.kwargs["messages"]
        assert messages == [{"role": "user", "content": "draw a cat"}]


class TestResponseParsing:
    @pytest.mark.asyncio
    async def test_structured_reply(self, backend):
        reply = json.dumps({"text": "Bonjour", "language": "fr", "sensitive": True})
        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_text_response(reply)),
        ):
            update = await backend.send(_incomplete(UserMessage.from_text("hello")))

        assert update.tool_callings is None
        assert update.response.text == "Bonjour"
        assert update.response.language == "fr"
        assert update.response.sensitive is True

    @pytest.mark.asyncio
    async def test_plain_reply(self, plain_backend):
        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_text_response("just text")),
        ):
            update = await plain_backend.send(_incomplete(UserMessage.from_text("hello")))

        assert update.response.text == "just text"
        assert update.response.sensitive is None

    @pytest.mark.asyncio
    async def test_tool_call_reply(self, backend):
        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_tool_call_response("get_time", '{"tz": "UTC"}')),
        ):
            update = await backend.send(_incomplete(UserMessage.from_text("time?")))

        assert update.response is None
        assert update.tool_callings == [
            FunctionCall(id="call_123", name="get_time", arguments={"tz": "UTC"})
        ]

    @pytest.mark.asyncio
    async def test_empty_tool_arguments_become_empty_object(self, backend):
        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_tool_call_response("get_time", "")),
        ):
            update = await backend.send(_incomplete(UserMessage.from_text("time?")))

        assert update.tool_callings[0].arguments == {}

    @pytest.mark.asyncio
    async def test_invalid_structured_reply(self, backend):
        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_text_response("not json")),
        ):
            with pytest.raises(LLMResponseFormatError):
                await backend.send(_incomplete(UserMessage.from_text("hello")))

    @pytest.mark.asyncio
    async def test_invalid_tool_arguments(self, backend):
        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_tool_call_response("get_time", "{oops")),
        ):
            with pytest.raises(LLMResponseFormatError, match="get_time"):
                await backend.send(_incomplete(UserMessage.from_text("time?")))

    @pytest.mark.asyncio
    async def test_no_choices(self, backend):
        response = MagicMock()
        response.choices = []
        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=response),
        ):
            with pytest.raises(LLMNoChoiceError):
                await backend.send(_incomplete(UserMessage.from_text("hello")))


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_connection_error(self, backend):
        error = litellm.exceptions.APIConnectionError(
            message="connection refused", llm_provider="openai", model="gpt-4o-mini"
        )
        with patch("tidebot.llm.litellm_backend.acompletion", new=AsyncMock(side_effect=error)):
            with pytest.raises(LLMCommunicationError) as exc_info:
                await backend.send(_incomplete(UserMessage.from_text("hello")))
        assert exc_info.value.cause is error

    @pytest.mark.asyncio
    async def test_timeout(self, backend):
        error = litellm.exceptions.Timeout(
            message="timed out", model="gpt-4o-mini", llm_provider="openai"
        )
        with patch("tidebot.llm.litellm_backend.acompletion", new=AsyncMock(side_effect=error)):
            with pytest.raises(LLMCommunicationError):
                await backend.send(_incomplete(UserMessage.from_text("hello")))

    @pytest.mark.asyncio
    async def test_other_errors_are_backend_errors(self, backend):
        error = RuntimeError("rate limited")
        with patch("tidebot.llm.litellm_backend.acompletion", new=AsyncMock(side_effect=error)):
            with pytest.raises(LLMBackendError, match="rate limited") as exc_info:
                await backend.send(_incomplete(UserMessage.from_text("hello")))
        assert exc_info.value.cause is error
