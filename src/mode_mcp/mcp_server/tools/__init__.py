"""Mode tool handlers and the registry builder."""

from mode_mcp.mcp_server.mode_client import ModeClient
from mode_mcp.mcp_server.registry import ToolRegistry
from mode_mcp.mcp_server.tools.exports import register_export_tools
from mode_mcp.mcp_server.tools.reports import register_report_tools
from mode_mcp.mcp_server.tools.spaces import register_space_tools


def build_tool_registry(client: ModeClient) -> ToolRegistry:
    """Build the registry of all Mode tools bound to ``client``."""
    registry = ToolRegistry()
    register_report_tools(registry, client)
    register_space_tools(registry, client)
    register_export_tools(registry, client)
    return registry
