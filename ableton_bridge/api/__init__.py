"""MCP and HTTP surfaces over the command dispatcher."""
