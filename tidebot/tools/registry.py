"""
Tool registry: name → tool map with dispatch.

The registry is the only mutable state the engine shares between turns. A
single asyncio.Lock guards the map, and it is held only while reading or
writing the dict: dispatch copies the tool reference out, releases the lock,
and then awaits the call. A slow tool therefore never blocks registration or
calls to other tools.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from tidebot.config.logging import get_logger
from tidebot.errors import FunctionError, FunctionExternalError
from tidebot.tools.base import Tool, ToolDescriptor, ToolResult

logger = get_logger(__name__)

AnnounceCallback = Callable[[ToolDescriptor], Awaitable[None]]


class ToolRegistry:
    """
    Holds the currently available tools and dispatches calls by name.

    Args:
        announce: Coroutine called with each registered tool's descriptor,
                  normally ``LLMBackend.announce_tool`` so the model is told
                  about the tool before its next turn.
    """

    def __init__(self, announce: AnnounceCallback | None = None):
        self._announce = announce
        self._tools: dict[str, Tool] = {}
        self._lock = asyncio.Lock()

    async def register(self, tool: Tool) -> ToolDescriptor:
        """
        Register a tool under its descriptor's name.

        Registering a name that already exists replaces the old tool (last
        registration wins).
        """
        descriptor = tool.descriptor()
        async with self._lock:
            if descriptor.name in self._tools:
                logger.warning(f"Tool {descriptor.name!r} already registered, replacing it")
            self._tools[descriptor.name] = tool

        if self._announce is not None:
            await self._announce(descriptor)
        logger.info(f"Registered tool {descriptor.name!r}")
        return descriptor

    async def names(self) -> list[str]:
        async with self._lock:
            return list(self._tools)

    async def dispatch(self, call_id: str, name: str, arguments: Any) -> ToolResult | None:
        """
        Call the tool registered as ``name``.

        Returns:
            The tool's result, or None if no tool has that name (the call is
            skipped, not failed)

        Raises:
            FunctionError: If the tool fails. Exceptions outside the
                FunctionError family are wrapped in FunctionExternalError.
        """
        async with self._lock:
            tool = self._tools.get(name)

        if tool is None:
            logger.warning(f"Tool {name!r} not found, skipping call {call_id}")
            return None

        logger.info(f"Calling tool {name!r} (id: {call_id})")
        try:
            return await tool.call(call_id, arguments)
        except FunctionError:
            raise
        except Exception as e:
            raise FunctionExternalError(f"tool {name!r} failed: {e}", cause=e) from e
