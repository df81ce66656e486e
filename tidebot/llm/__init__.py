"""
LLM Layer.

The port the engine talks to (LLMBackend) and its LiteLLM implementation:

    Assistant.process_conversation()
                 ↓
    LLMBackend.send(IncompleteConversation)  →  LLMUpdate
                 ↓                                 (response and/or tool calls)
    LiteLLMBackend → LiteLLM acompletion() → any provider

Key responsibilities:
- Convert conversation messages into provider chat messages
- Advertise announced tools as function definitions
- Request structured output (text, language, sensitive) when enabled
- Map provider failures into the LLMError family
"""

from tidebot.errors import LLMError
from tidebot.llm.base import ASSISTANT_RESPONSE_SCHEMA, AssistantResponse, LLMBackend, LLMUpdate
from tidebot.llm.litellm_backend import LiteLLMBackend

__all__ = [
    "ASSISTANT_RESPONSE_SCHEMA",
    "AssistantResponse",
    "LLMBackend",
    "LLMError",
    "LLMUpdate",
    "LiteLLMBackend",
]
