"""MCP prompt renderers"""

from .remote_setup import render_remote_setup_prompt

__all__ = ["render_remote_setup_prompt"]
