"""
Integration tests for the assistant engine.

Everything is real (LiteLLM backend, tool registry, built-in tools, SQLite
storage, component factory) except the LiteLLM API call itself, which is
mocked. These catch wiring bugs between layers: tool schemas the backend
announces, message conversion of function calls and responses, and the
conversation blob that goes through the database and back.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tidebot.components import AssistantComponents
from tidebot.config.settings import Settings
from tidebot.conversation.messages import UserMessage


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_text_response(text: str) -> MagicMock:
    """Build a mock LiteLLM text-only response."""
    choice = MagicMock()
    choice.message.content = text
    choice.message.tool_calls = None

    response = MagicMock()
    response.choices = [choice]
    return response


def _make_tool_call_response(tool_name: str, arguments: dict, call_id: str = "call_1") -> MagicMock:
    """Build a mock LiteLLM response that requests a tool call."""
    tool_call = MagicMock()
    tool_call.id = call_id
    tool_call.function.name = tool_name
    tool_call.function.arguments = json.dumps(arguments)

    choice = MagicMock()
    choice.message.content = None
    choice.message.tool_calls = [tool_call]

    response = MagicMock()
    response.choices = [choice]
    return response


def _structured(text: str, sensitive: bool = False) -> str:
    return json.dumps({"text": text, "language": "en", "sensitive": sensitive})


def _settings(tmp_path, backend: str = "sqlite") -> Settings:
    settings = Settings()
    settings.assistant.system_role = "You are Tidebot."
    settings.storage.backend = backend
    settings.storage.sqlite_path = str(tmp_path / "conversations.db")
    settings.tools.image_generator = False
    return settings


# ---------------------------------------------------------------------------
# Full turn with tools
# ---------------------------------------------------------------------------

class TestToolTurn:
    @pytest.mark.asyncio
    async def test_local_info_round_trip(self, tmp_path):
        factory = AssistantComponents(_settings(tmp_path))
        responses = [
            _make_tool_call_response("local_info", {}),
            _make_text_response(_structured("It is late.")),
        ]

        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(side_effect=responses),
        ) as mock_acompletion:
            async with factory.create_storage() as storage:
                assistant = await factory.create_assistant(storage)
                update = await assistant.process_conversation(
                    assistant.new_conversation(), UserMessage.from_text("What time is it?")
                )

        assert update.assistant_message.text == "It is late."
        assert update.assistant_message.language == "en"

        first_call = mock_acompletion.await_args_list[0].kwargs
        tool_names = {t["function"]["name"] for t in first_call["tools"]}
        assert tool_names == {"self_info", "local_info"}
        assert first_call["response_format"]["type"] == "json_schema"

        # Second request carries the tool call and its result
        second_messages = mock_acompletion.await_args_list[1].kwargs["messages"]
        assert [m["role"] for m in second_messages] == ["system", "user", "assistant", "tool"]
        assert second_messages[2]["tool_calls"][0]["function"]["name"] == "local_info"
        tool_result = json.loads(second_messages[3]["content"])
        assert set(tool_result) == {"time_now", "bot_started_at"}

    @pytest.mark.asyncio
    async def test_unknown_tool_is_left_out_of_follow_up_request(self, tmp_path):
        factory = AssistantComponents(_settings(tmp_path, backend="memory"))
        two_calls = _make_tool_call_response("missing", {}, call_id="1")
        extra = _make_tool_call_response("local_info", {}, call_id="2")
        two_calls.choices[0].message.tool_calls += extra.choices[0].message.tool_calls
        responses = [two_calls, _make_text_response(_structured("ok"))]

        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(side_effect=responses),
        ) as mock_acompletion:
            async with factory.create_storage() as storage:
                assistant = await factory.create_assistant(storage)
                update = await assistant.process_conversation(
                    assistant.new_conversation(), UserMessage.from_text("What time is it?")
                )

        assert update.assistant_message.text == "ok"
        second_messages = mock_acompletion.await_args_list[1].kwargs["messages"]
        asked = {
            call["id"]
            for m in second_messages
            if m["role"] == "assistant" and m.get("tool_calls")
            for call in m["tool_calls"]
        }
        answered = {m["tool_call_id"] for m in second_messages if m["role"] == "tool"}
        assert asked == answered == {"2"}
        # The stored history still records both requested calls
        assert [c.id for c in update.conversation.messages[2].calls] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_sensitive_flag_from_model(self, tmp_path):
        factory = AssistantComponents(_settings(tmp_path, backend="memory"))

        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(return_value=_make_text_response(_structured("hush", sensitive=True))),
        ):
            async with factory.create_storage() as storage:
                assistant = await factory.create_assistant(storage, tools=[])
                update = await assistant.process_conversation(
                    assistant.new_conversation(), UserMessage.from_text("tell me a secret")
                )

        assert update.assistant_message.is_sensitive is True


# ---------------------------------------------------------------------------
# Persistence across sessions
# ---------------------------------------------------------------------------

class TestConversationPersistence:
    @pytest.mark.asyncio
    async def test_saved_conversation_resumes_after_reopen(self, tmp_path):
        settings = _settings(tmp_path)
        responses = [
            _make_tool_call_response("self_info", {}),
            _make_text_response(_structured("I am Tidebot.")),
            _make_text_response(_structured("You asked who I am.")),
        ]

        with patch(
            "tidebot.llm.litellm_backend.acompletion",
            new=AsyncMock(side_effect=responses),
        ) as mock_acompletion:
            factory = AssistantComponents(settings)
            async with factory.create_storage() as storage:
                assistant = await factory.create_assistant(storage)
                update = await assistant.process_conversation(
                    assistant.new_conversation(), UserMessage.from_text("Who are you?")
                )
                first = update.finish()
                await assistant.save_conversation(first, "discord", "1001")

            # New storage instance over the same database file
            factory = AssistantComponents(settings)
            async with factory.create_storage() as storage:
                assistant = await factory.create_assistant(storage)
                restored = await assistant.restore_conversation("discord", "1001")
                assert restored == first

                update = await assistant.process_conversation(
                    restored, UserMessage.from_text("What did I ask?")
                )
                second = update.finish()
                await assistant.save_conversation(second, "discord", "1002")

                assert await assistant.restore_conversation("discord", "1001") is None
                assert await assistant.restore_conversation("discord", "1002") == second

        assert [m.role for m in second.messages] == [
            "system", "user", "function_calls", "function_response", "assistant",
            "user", "assistant",
        ]
        # The resumed request replays the whole history in chat format
        third_messages = mock_acompletion.await_args_list[2].kwargs["messages"]
        assert [m["role"] for m in third_messages] == [
            "system", "user", "assistant", "tool", "assistant", "user",
        ]
