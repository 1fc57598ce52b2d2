"""Tool implementations backing the MCP server."""
