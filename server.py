"""MCP server entry point - run by the agent host over stdio."""

from stock_assistant.main import run

if __name__ == "__main__":
    run()
