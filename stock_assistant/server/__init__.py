"""Protocol surfaces: tool catalogue and MCP server."""

from .tools import TOOLS, ToolDispatcher, ToolResult, ToolSpec

__all__ = ["TOOLS", "ToolDispatcher", "ToolResult", "ToolSpec"]
