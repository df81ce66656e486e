"""
Message variants that make up a conversation.

A conversation is an ordered list of these. The set is closed and each
variant carries a ``role`` literal, so a Message round-trips through JSON
as a discriminated union:

- SystemMessage: the assistant's standing instructions
- UserMessage: text and image parts from the person talking to the bot
- FunctionCallsMessage: the tool calls the model asked for in one turn
- FunctionResponseMessage: the result of one of those calls
- AssistantMessage: the final reply of a turn

Messages are frozen once built.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TextContent(BaseModel):
    kind: Literal["text"] = "text"
    text: str

    model_config = ConfigDict(frozen=True)


class ImageUrlContent(BaseModel):
    kind: Literal["image_url"] = "image_url"
    url: str

    model_config = ConfigDict(frozen=True)


UserContent = Annotated[Union[TextContent, ImageUrlContent], Field(discriminator="kind")]


class SystemMessage(BaseModel):
    role: Literal["system"] = "system"
    text: str

    model_config = ConfigDict(frozen=True)


class UserMessage(BaseModel):
    """A user's input: one or more text/image parts, optional name and language tag."""

    role: Literal["user"] = "user"
    contents: tuple[UserContent, ...] = Field(min_length=1)
    name: str | None = Field(None, description="Display name of the speaker")
    language: str | None = Field(None, description="IETF BCP 47 language tag")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_text(
        cls,
        text: str,
        name: str | None = None,
        language: str | None = None,
        image_urls: tuple[str, ...] | list[str] = (),
    ) -> UserMessage:
        contents: list[TextContent | ImageUrlContent] = [TextContent(text=text)]
        contents.extend(ImageUrlContent(url=url) for url in image_urls)
        return cls(contents=tuple(contents), name=name, language=language)

    @property
    def text(self) -> str:
        """All text parts joined by newlines."""
        return "\n".join(c.text for c in self.contents if isinstance(c, TextContent))


class FunctionCall(BaseModel):
    """One tool invocation requested by the model."""

    id: str
    name: str
    arguments: Any = Field(default_factory=dict, description="Structured (JSON-like) arguments")

    model_config = ConfigDict(frozen=True)


class FunctionCallsMessage(BaseModel):
    role: Literal["function_calls"] = "function_calls"
    calls: tuple[FunctionCall, ...]

    model_config = ConfigDict(frozen=True)


class FunctionResponseMessage(BaseModel):
    role: Literal["function_response"] = "function_response"
    id: str = Field(description="Id of the FunctionCall this answers")
    name: str
    result: Any = None

    model_config = ConfigDict(frozen=True)


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    text: str
    is_sensitive: bool = False
    language: str | None = None

    model_config = ConfigDict(frozen=True)


Message = Annotated[
    Union[
        SystemMessage,
        UserMessage,
        FunctionCallsMessage,
        FunctionResponseMessage,
        AssistantMessage,
    ],
    Field(discriminator="role"),
]
