"""MCP server, remote execution core and host setup engine"""
