"""
mode_mcp MCP Server

JSON-RPC 2.0 server exposing the Mode Analytics API as MCP tools.
Speaks Content-Length framed stdio by default, or HTTP (POST /rpc).

Start with:
    python -m mode_mcp.mcp_server.server
"""
