"""iOS Simulator MCP server with remote macOS host support"""

__version__ = "0.3.0"
