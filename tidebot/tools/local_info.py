"""Local environment tool: current time and when the bot started."""

from datetime import datetime
from typing import Any

from tidebot.tools.base import Tool, ToolDescriptor, ToolResult
from tidebot.tools.schema import SchemaDescriptor


def _now() -> datetime:
    return datetime.now().astimezone()


class LocalInfoTool(Tool):
    """
    Provides information about the environment the bot runs in.

    Times are RFC 3339 strings in the host's local timezone. The start time
    is captured when the tool is constructed.
    """

    def __init__(self):
        self.started_at = _now()

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name="local_info",
            description="Get information about the environment this bot runs in:\n"
                        "- the current date and time\n"
                        "- the date and time the bot started",
            parameters=SchemaDescriptor.object("parameters", "arguments"),
        )

    async def call(self, call_id: str, arguments: Any) -> ToolResult:
        return ToolResult(
            result={
                "time_now": _now().isoformat(timespec="seconds"),
                "bot_started_at": self.started_at.isoformat(timespec="seconds"),
            }
        )
