"""MCP server exposing vault sync as tools."""
