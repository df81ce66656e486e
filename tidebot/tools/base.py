"""
Base classes for tools.

A tool is a named capability the model may call during a turn: the current
time, image generation, and so on. Each tool describes itself with a
ToolDescriptor (name, description, parameter schema) and answers calls with
a ToolResult (structured result plus optional attachments).
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tidebot.conversation.models import Attachment
from tidebot.tools.schema import SchemaDescriptor


class ToolDescriptor(BaseModel):
    """How a tool is advertised to the model."""

    name: str = Field(min_length=1, description="Unique tool name (registry key)")
    description: str = Field(description="What the tool does, for the model")
    parameters: SchemaDescriptor = Field(description="Call arguments (an OBJECT schema)")

    model_config = ConfigDict(frozen=True)


class ToolResult(BaseModel):
    """Outcome of one tool call."""

    result: Any = Field(default=None, description="Structured value sent back to the model")
    attachments: list[Attachment] = Field(
        default_factory=list, description="Side-channel output for the platform (e.g. images)"
    )


class Tool(ABC):
    """
    Abstract base class for tools.

    Subclasses implement descriptor() and call(). Tools that hold resources
    (HTTP clients, subprocesses) override initialize() and shutdown(); the
    async context manager calls them.

    Example:
        >>> class Echo(Tool):
        ...     def descriptor(self):
        ...         return ToolDescriptor(
        ...             name="echo",
        ...             description="Echo the input",
        ...             parameters=SchemaDescriptor.object(
        ...                 "parameters", "arguments",
        ...                 [SchemaDescriptor.string("text", "Text to echo")],
        ...             ),
        ...         )
        ...     async def call(self, call_id, arguments):
        ...         return ToolResult(result={"text": arguments["text"]})
    """

    @abstractmethod
    def descriptor(self) -> ToolDescriptor:
        """Return this tool's descriptor."""
        pass

    @abstractmethod
    async def call(self, call_id: str, arguments: Any) -> ToolResult:
        """
        Execute the tool.

        Args:
            call_id: Id of the model's function call (for logging/correlation)
            arguments: Structured arguments decoded from the model's request

        Returns:
            ToolResult with the value to send back and any attachments

        Raises:
            FunctionError: If the call cannot be completed
        """
        pass

    async def initialize(self) -> None:
        """Acquire resources. No-op by default."""

    async def shutdown(self) -> None:
        """Release resources. No-op by default."""

    async def __aenter__(self):
        """Context manager entry - initialize the tool."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - shutdown the tool."""
        await self.shutdown()
        return False
