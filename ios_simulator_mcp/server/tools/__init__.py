"""MCP tool implementations"""
