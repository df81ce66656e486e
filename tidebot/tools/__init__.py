"""
Tool Integration Layer.

Tool interface, the name-keyed registry the engine dispatches through, the
schema descriptors tools use to document their parameters, and the built-in
tools (self_info, local_info, image_generator).
"""

from tidebot.tools.base import Tool, ToolDescriptor, ToolResult
from tidebot.tools.image_generator import ImageGeneratorTool
from tidebot.tools.local_info import LocalInfoTool
from tidebot.tools.registry import ToolRegistry
from tidebot.tools.schema import SchemaDescriptor, SchemaKind, convert_schema
from tidebot.tools.self_info import SelfInfoTool

__all__ = [
    "ImageGeneratorTool",
    "LocalInfoTool",
    "SchemaDescriptor",
    "SchemaKind",
    "SelfInfoTool",
    "Tool",
    "ToolDescriptor",
    "ToolRegistry",
    "ToolResult",
    "convert_schema",
]
