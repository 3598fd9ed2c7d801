"""Unit tests for MCP server wiring"""

import pytest

from ios_simulator_mcp.server.config import ServerConfig
from ios_simulator_mcp.server.error_utils import SETUP_TOOL_NAME
from ios_simulator_mcp.server.main import create_server


class TestCreateServer:
    @pytest.mark.asyncio
    async def test_registers_surface(self):
        mcp = create_server(ServerConfig())

        tools = await mcp.get_tools()
        resources = await mcp.get_resources()
        prompts = await mcp.get_prompts()

        assert SETUP_TOOL_NAME in tools
        assert "remote://session" in resources
        assert "Remote Host Setup Workflow" in prompts

    @pytest.mark.asyncio
    async def test_filtered_tool_not_registered(self):
        mcp = create_server(ServerConfig(filtered_tools=[SETUP_TOOL_NAME]))

        tools = await mcp.get_tools()
        assert SETUP_TOOL_NAME not in tools

    def test_config_exposed_to_lifespan(self):
        config = ServerConfig(ssh_host="mac.local")
        assert create_server(config).get_config() is config
