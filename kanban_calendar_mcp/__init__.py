"""MCP server exposing dated tasks from markdown Kanban boards as a calendar."""

__version__ = "0.1.0"
