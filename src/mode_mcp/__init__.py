"""mode_mcp — Mode Analytics tools exposed over JSON-RPC (MCP)."""
