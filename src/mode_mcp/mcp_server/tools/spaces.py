"""MCP tool: listSpaces — enumerate Mode collections (spaces)."""

from functools import partial
from typing import Any

from mode_mcp.mcp_server.mode_client import ModeClient
from mode_mcp.mcp_server.registry import ToolRegistry
from mode_mcp.mcp_server.schemas import tool_input_schema


async def _mode_list_spaces(client: ModeClient) -> Any:
    return await client.request_json("GET", "spaces")


def register_space_tools(registry: ToolRegistry, client: ModeClient) -> None:
    registry.register(
        name=client.settings.tool_name("listSpaces"),
        fn=partial(_mode_list_spaces, client),
        description="List spaces (collections) in the configured Mode workspace.",
        input_schema=tool_input_schema(),
    )
