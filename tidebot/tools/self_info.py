"""Self-information tool: lets the model answer questions about the bot itself."""

import platform
from typing import Any

from tidebot import __version__
from tidebot.tools.base import Tool, ToolDescriptor, ToolResult
from tidebot.tools.schema import SchemaDescriptor


class SelfInfoTool(Tool):
    """Reports the bot's name, version and runtime."""

    def __init__(self, bot_name: str = "Tidebot", model: str | None = None):
        self._bot_name = bot_name
        self._model = model

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name="self_info",
            description="Get information about this bot itself: its name, software version, "
                        "language model and runtime.",
            parameters=SchemaDescriptor.object("parameters", "arguments"),
        )

    async def call(self, call_id: str, arguments: Any) -> ToolResult:
        info = {
            "name": self._bot_name,
            "version": __version__,
            "python": platform.python_version(),
        }
        if self._model:
            info["model"] = self._model
        return ToolResult(result=info)
