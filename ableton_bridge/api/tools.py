"""MCP tool surface: list the catalog and route every call to the dispatcher."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from mcp import types
from mcp.server.lowlevel import Server

from ..catalog import EMPTY_INPUT_SCHEMA, Catalog
from ..dispatcher import CommandDispatcher
from ..features.health import HEALTH_CHECK, HEALTH_DESCRIPTION
from ._shared import envelope_message, render_text

logger = logging.getLogger("ableton_bridge.mcp.tools")


class ToolCallError(Exception):
    """Raised out of ``call_tool`` so the SDK renders an ``isError`` result."""


def list_tool_definitions(catalog: Catalog) -> List[types.Tool]:
    tools = [
        types.Tool(
            name=HEALTH_CHECK,
            description=HEALTH_DESCRIPTION,
            inputSchema=dict(EMPTY_INPUT_SCHEMA),
        )
    ]
    for entry in catalog.tools:
        if entry.name == HEALTH_CHECK:
            continue
        tools.append(
            types.Tool(
                name=entry.name,
                description=entry.description,
                inputSchema=dict(entry.input_schema),
            )
        )
    return tools


async def call_tool(
    dispatcher: CommandDispatcher, name: str, arguments: Optional[Mapping[str, Any]]
) -> List[types.TextContent]:
    payload = await dispatcher.invoke(name, arguments or {})
    if not payload.get("ok"):
        raise ToolCallError(f"Error: {envelope_message(payload)}")
    return [types.TextContent(type="text", text=render_text(payload.get("data")))]


def register_tools(server: Server, *, dispatcher: CommandDispatcher) -> None:
    catalog = dispatcher.catalog

    @server.list_tools()
    async def _list_tools() -> List[types.Tool]:
        return list_tool_definitions(catalog)

    # Arguments go to the dispatcher untouched; it owns validation.
    @server.call_tool(validate_input=False)
    async def _call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        logger.debug("tool.call", extra={"tool": name})
        return await call_tool(dispatcher, name, arguments)


__all__ = ["ToolCallError", "call_tool", "list_tool_definitions", "register_tools"]
