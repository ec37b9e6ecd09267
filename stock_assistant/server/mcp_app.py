"""Model Context Protocol server over stdio."""

import logging

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from .. import __version__
from .tools import TOOLS, ToolDispatcher

logger = logging.getLogger(__name__)

SERVER_NAME = "nasdaq-100-stock-server"


def create_server(dispatcher: ToolDispatcher) -> Server:
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list:
        return [
            types.Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
            for tool in TOOLS
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> types.CallToolResult:
        logger.info("Tool call: %s", name)
        result = await dispatcher.dispatch(name, arguments)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=result.text)],
            isError=result.is_error,
        )

    return server


async def run_stdio(server: Server) -> None:
    """Serve until the host closes stdin. Stdout carries protocol frames only."""
    async with stdio_server() as (read_stream, write_stream):
        logger.info("NASDAQ-100 Stock MCP Server running...")
        await server.run(read_stream, write_stream, server.create_initialization_options())
