"""MCP server for the Kxin Notes store."""
